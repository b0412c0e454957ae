"""Serde layer — stateless adaptors between domain values and primitive shapes.

Adaptors may import from domain and pydantic only. Optional adaptor families live in
their own modules and are enabled per feature through
:class:`caco3.serde.registry.AdaptorSet`.
"""
