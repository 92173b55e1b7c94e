"""HTTP service layer for the workspace assistant."""
