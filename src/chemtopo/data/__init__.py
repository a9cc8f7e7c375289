"""Data loading module for the bundled monomer library."""

from chemtopo.data.loader import load_bundled_monomers, get_data_path, clear_cache

__all__ = ["load_bundled_monomers", "get_data_path", "clear_cache"]
