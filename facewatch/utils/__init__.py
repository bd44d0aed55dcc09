"""Image, drawing and logging helpers."""
