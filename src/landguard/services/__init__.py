"""Service layer wiring scoring and storage into property and scan workflows."""
