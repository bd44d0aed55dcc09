"""Video capture and live display loop."""
