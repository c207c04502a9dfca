"""HTTP boundary for the blog feed."""
