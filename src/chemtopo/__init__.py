"""
chemtopo - restraint topology and riding hydrogens

Builds the restraint graph of a macromolecular model (bonds, angles,
torsions, chiralities and planes) from a monomer library, and places
hydrogens using those restraints.
"""

__version__ = "0.3.0"

from chemtopo.chemtopo import TopologyBuilder, TopologyConfig, prepare_topology
from chemtopo.monlib import MonomerLibrary, read_monomer_library
from chemtopo.core.structures import Atom, Residue, Chain, Model, Structure
from chemtopo.topology.topo import Topology
from chemtopo.topology.hydrogens import HydrogenChange, place_hydrogens_on_all_atoms
from chemtopo.topology.assembler import assemble

__all__ = [
    "TopologyBuilder",
    "TopologyConfig",
    "prepare_topology",
    "MonomerLibrary",
    "read_monomer_library",
    "Atom",
    "Residue",
    "Chain",
    "Model",
    "Structure",
    "Topology",
    "HydrogenChange",
    "place_hydrogens_on_all_atoms",
    "assemble",
    "__version__",
]
