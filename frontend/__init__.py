"""Web frontend rendering the listen feed for signed-in users."""
