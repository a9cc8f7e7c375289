"""PDB and monomer library I/O."""

from chemtopo.io.pdb_parser import read_pdb_file, read_pdb_string
from chemtopo.io.pdb_writer import write_pdb, structure_to_pdb_string
from chemtopo.io.monlib_reader import (
    MonomerData,
    read_monomer_cif,
    read_monomer_cif_string,
)

__all__ = [
    "read_pdb_file",
    "read_pdb_string",
    "write_pdb",
    "structure_to_pdb_string",
    "MonomerData",
    "read_monomer_cif",
    "read_monomer_cif_string",
]
