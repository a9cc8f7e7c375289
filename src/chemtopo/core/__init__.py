"""Core data structures, restraint templates and geometry."""

from chemtopo.core.structures import (
    Atom,
    Residue,
    Chain,
    Model,
    Structure,
    Entity,
    Connection,
    AtomAddress,
    SeqId,
    EntityType,
    PolymerType,
    ConnectionType,
)
from chemtopo.core.restraints import (
    AtomId,
    Bond,
    Angle,
    Torsion,
    Chirality,
    ChiralityType,
    Plane,
    Restraints,
)
from chemtopo.core.chemcomp import (
    ChemComp,
    ChemLink,
    ChemMod,
    CompAtom,
    Aliasing,
    Group,
    LinkSide,
    ModificationError,
)
from chemtopo.core.geometry import (
    calc_distance,
    calc_angle,
    calc_torsion,
    calc_chiral_volume,
    position_from_angle_and_torsion,
    position_from_two_angles,
    trilaterate,
)

__all__ = [
    "Atom",
    "Residue",
    "Chain",
    "Model",
    "Structure",
    "Entity",
    "Connection",
    "AtomAddress",
    "SeqId",
    "EntityType",
    "PolymerType",
    "ConnectionType",
    "AtomId",
    "Bond",
    "Angle",
    "Torsion",
    "Chirality",
    "ChiralityType",
    "Plane",
    "Restraints",
    "ChemComp",
    "ChemLink",
    "ChemMod",
    "CompAtom",
    "Aliasing",
    "Group",
    "LinkSide",
    "ModificationError",
    "calc_distance",
    "calc_angle",
    "calc_torsion",
    "calc_chiral_volume",
    "position_from_angle_and_torsion",
    "position_from_two_angles",
    "trilaterate",
]
