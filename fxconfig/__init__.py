"""Configuration loading and validation, policy parsing, and building, endorsing and merging of Fabric-X namespace transactions."""

__version__ = "0.1.0"