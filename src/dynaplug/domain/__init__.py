"""Manifests, extensions, and the rules deciding which extensions are active.

This layer depends only on stdlib and pydantic.
It must never import from runtime, services, commands, or config.
"""
