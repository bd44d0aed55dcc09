"""Face building blocks (gallery/detector/matcher/annotator/pipeline).

Each piece takes a small dataclass config so the live loop and the single-image
mode can share the same per-frame pipeline.
"""
