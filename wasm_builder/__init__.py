"""Reproducible Rust → WebAssembly library builds."""

__version__ = "0.1.0"
