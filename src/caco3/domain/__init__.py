"""Domain layer — value types with canonical text encodings.

This layer depends only on stdlib.
It must never import from serde or config.
"""
