"""Pure IPAM building blocks: CIDR arithmetic, classification, overlaps, templates."""
