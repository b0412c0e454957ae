"""Config layer — layer capture, merge, and schema resolution.

Config may import from domain and serde. Domain and serde must never
import from config.
"""
