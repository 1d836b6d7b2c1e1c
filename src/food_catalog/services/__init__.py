"""Application services and repository interfaces."""
