"""Topology assembly, ad-hoc restraints and hydrogen placement."""

from chemtopo.topology.topo import (
    Topology,
    ResInfo,
    ChainInfo,
    Link,
    Mod,
    Rule,
    RKind,
    ChemCompKey,
    BondInstance,
    AngleInstance,
    TorsionInstance,
    ChiralityInstance,
    PlaneInstance,
)
from chemtopo.topology.index import TopologyIndex
from chemtopo.topology.adhoc import make_chemcomp_with_restraints
from chemtopo.topology.assembler import (
    assemble,
    initialize,
    finalize,
    add_polymer_links,
    setup_connection,
    apply_restraints,
    apply_restraints_from_link,
)
from chemtopo.topology.hydrogens import (
    HydrogenChange,
    HydrogenPlacementError,
    place_hydrogens,
    place_hydrogens_on_all_atoms,
    remove_hydrogens,
    add_hydrogens_without_positions,
)

__all__ = [
    "Topology",
    "ResInfo",
    "ChainInfo",
    "Link",
    "Mod",
    "Rule",
    "RKind",
    "ChemCompKey",
    "BondInstance",
    "AngleInstance",
    "TorsionInstance",
    "ChiralityInstance",
    "PlaneInstance",
    "TopologyIndex",
    "make_chemcomp_with_restraints",
    "assemble",
    "initialize",
    "finalize",
    "add_polymer_links",
    "setup_connection",
    "apply_restraints",
    "apply_restraints_from_link",
    "HydrogenChange",
    "HydrogenPlacementError",
    "place_hydrogens",
    "place_hydrogens_on_all_atoms",
    "remove_hydrogens",
    "add_hydrogens_without_positions",
]
