"""HTTP helpers shared by the repository routes."""
