"""HTTP surface for the clinic registry."""
