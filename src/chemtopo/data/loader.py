"""
Data loading utilities for the bundled monomer library.

The package ships a small CCP4-style dictionary (a few amino acids,
water, ammonia, the standard polymer links and terminal modifications)
that is enough for tests and for the command line default.
"""

import copy
from pathlib import Path

from chemtopo.io.monlib_reader import MonomerData, read_monomer_cif

# Cache for loaded data
_DATA_CACHE = {}

BUNDLED_FILES = [
    "mon_lib_list.cif",
    "ALA.cif",
    "CYS.cif",
    "GLY.cif",
    "HOH.cif",
    "NH3.cif",
]


def get_data_path(filename: str) -> Path:
    """
    Get the path to a bundled dictionary file.

    Args:
        filename: Name of the file in the monomers directory

    Returns:
        Path to the data file
    """
    try:
        from importlib.resources import files

        return Path(str(files("chemtopo.data") / "monomers" / filename))
    except (ImportError, TypeError):
        # running from source
        return Path(__file__).parent / "monomers" / filename


def load_bundled_monomers() -> MonomerData:
    """
    Load all bundled dictionary files.

    Returns:
        MonomerData with components, links and modifications; a private
        copy, so callers may register new links in it
    """
    if "monomers" not in _DATA_CACHE:
        data = MonomerData()
        for filename in BUNDLED_FILES:
            path = get_data_path(filename)
            try:
                data.update(read_monomer_cif(path))
            except FileNotFoundError:
                raise FileNotFoundError(
                    f"Bundled monomer library file not found: {path}"
                )
        _DATA_CACHE["monomers"] = data

    return copy.deepcopy(_DATA_CACHE["monomers"])


def clear_cache():
    """Clear the data cache to free memory."""
    _DATA_CACHE.clear()


def data_files_exist() -> bool:
    """
    Check if all bundled data files exist.

    Returns:
        True if all data files exist, False otherwise
    """
    for filename in BUNDLED_FILES:
        if not get_data_path(filename).exists():
            return False
    return True
