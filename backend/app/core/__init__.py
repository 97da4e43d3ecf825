"""Core module for DI container and other core utilities."""

from app.core.di import Container, build_container, get_container, get_pipeline

__all__ = ["Container", "build_container", "get_container", "get_pipeline"]
