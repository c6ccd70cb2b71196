"""Image generation adapter package.

Scope:
    Provides text-to-image provider clients (Stability AI, DeepAI), a small
    dispatch service used by the relay pipeline, and the tile slicer that cuts
    one generated image into photo-sized pieces.

Non-goals:
    - No image editing beyond grid slicing.
    - No caching of generated images.
"""
