"""Version algebra and update policy selection."""
