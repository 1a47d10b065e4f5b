"""Configuration loading utilities for zoompyramid."""

from .loader import ConfigLoader, PipelineConfig, load_config

__all__ = ["ConfigLoader", "PipelineConfig", "load_config"]
