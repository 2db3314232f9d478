"""HTTP surface for scans and property correlation."""
