"""
Restraint templates: idealized bonds, angles, torsions, chiralities and
planes that refer to atoms by name.

A template atom reference (AtomId) is scoped either to "this residue"
(comp=1) or to "the linked residue" (comp=2). Templates become concrete
restraints only when bound to Atom objects by the topology assembler.
"""

import copy
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from chemtopo.core.constants import DEGRAD
from chemtopo.core.structures import Atom, Residue


@dataclass(frozen=True)
class AtomId:
    """Reference to an atom by name, in residue 1 or 2 of a link."""

    comp: int
    atom: str

    def get_from(
        self,
        res1: Residue,
        res2: Optional[Residue],
        altloc: str,
        altloc2: str = "",
    ) -> Optional[Atom]:
        """
        Find the referenced atom in one of two residues.

        Atoms without altloc match any requested altloc. If the atom is
        missing from a microheterogeneity copy, the first copy at the
        same sequence position is searched too (shared backbone atoms).

        Args:
            res1: Residue for comp 1 (and for comp 2 if res2 is None)
            res2: Linked residue, or None
            altloc: Conformer to look for
            altloc2: Conformer for comp 2, overrides altloc if not empty

        Returns:
            Atom or None
        """
        residue = res1
        if self.comp == 2 and res2 is not None:
            residue = res2
            if altloc2:
                altloc = altloc2
        atom = residue.find_atom(self.atom, altloc, strict_altloc=False)
        if atom is None and residue.group_idx > 0 and residue.group_head is not None:
            atom = residue.group_head.find_atom(self.atom, altloc, strict_altloc=False)
        return atom

    def __str__(self) -> str:
        return self.atom if self.comp == 1 else f"{self.comp}:{self.atom}"


class _AtomIdsMixin:
    """Renaming and lookup shared by restraints with a fixed number of atoms."""

    _id_fields: Tuple[str, ...] = ()

    def atom_ids(self) -> Tuple[AtomId, ...]:
        return tuple(getattr(self, f) for f in self._id_fields)

    def has(self, atom_id: AtomId) -> bool:
        return atom_id in self.atom_ids()

    def rename(self, old: AtomId, new_name: str) -> None:
        for f in self._id_fields:
            if getattr(self, f) == old:
                setattr(self, f, AtomId(old.comp, new_name))


@dataclass
class Bond(_AtomIdsMixin):
    id1: AtomId
    id2: AtomId
    value: float
    esd: float
    value_nucleus: float = math.nan
    esd_nucleus: float = math.nan
    type: str = "single"
    aromatic: bool = False

    _id_fields = ("id1", "id2")

    def __post_init__(self):
        if math.isnan(self.value_nucleus):
            self.value_nucleus = self.value
        if math.isnan(self.esd_nucleus):
            self.esd_nucleus = self.esd

    def other(self, atom_id: AtomId) -> Optional[AtomId]:
        if self.id1 == atom_id:
            return self.id2
        if self.id2 == atom_id:
            return self.id1
        return None


@dataclass
class Angle(_AtomIdsMixin):
    id1: AtomId
    id2: AtomId
    id3: AtomId
    value: float  # degrees
    esd: float

    _id_fields = ("id1", "id2", "id3")

    def radians(self) -> float:
        return self.value * DEGRAD


@dataclass
class Torsion(_AtomIdsMixin):
    label: str
    id1: AtomId
    id2: AtomId
    id3: AtomId
    id4: AtomId
    value: float  # degrees
    esd: float
    period: int = 0

    _id_fields = ("id1", "id2", "id3", "id4")


class ChiralityType(Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"
    BOTH = "both"

    @classmethod
    def from_string(cls, text: str) -> "ChiralityType":
        """Parse dictionary volume_sign values ("positiv", "negativ", "both")."""
        text = text.strip().lower()
        if text.startswith("pos"):
            return cls.POSITIVE
        if text.startswith("neg"):
            return cls.NEGATIVE
        return cls.BOTH


@dataclass
class Chirality(_AtomIdsMixin):
    id_ctr: AtomId
    id1: AtomId
    id2: AtomId
    id3: AtomId
    sign: ChiralityType = ChiralityType.BOTH

    _id_fields = ("id_ctr", "id1", "id2", "id3")

    def is_wrong(self, volume: float) -> bool:
        """True if the signed chiral volume contradicts the declared sign."""
        return ((self.sign == ChiralityType.POSITIVE and volume < 0)
                or (self.sign == ChiralityType.NEGATIVE and volume > 0))


@dataclass
class Plane:
    label: str
    ids: List[AtomId] = field(default_factory=list)
    esd: float = 0.02

    def atom_ids(self) -> Tuple[AtomId, ...]:
        return tuple(self.ids)

    def has(self, atom_id: AtomId) -> bool:
        return atom_id in self.ids

    def rename(self, old: AtomId, new_name: str) -> None:
        self.ids = [AtomId(i.comp, new_name) if i == old else i for i in self.ids]


@dataclass
class Restraints:
    """The full set of restraint templates of a component or a link."""

    bonds: List[Bond] = field(default_factory=list)
    angles: List[Angle] = field(default_factory=list)
    torsions: List[Torsion] = field(default_factory=list)
    chirs: List[Chirality] = field(default_factory=list)
    planes: List[Plane] = field(default_factory=list)

    def all(self):
        yield from self.bonds
        yield from self.angles
        yield from self.torsions
        yield from self.chirs
        yield from self.planes

    def empty(self) -> bool:
        return not (self.bonds or self.angles or self.torsions
                    or self.chirs or self.planes)

    def copy(self) -> "Restraints":
        return copy.deepcopy(self)

    def rename_atom(self, atom_id: AtomId, new_name: str) -> None:
        for restr in self.all():
            restr.rename(atom_id, new_name)

    def remove_atom(self, name: str) -> None:
        """Remove every restraint referring to the atom, and the atom from planes."""
        atom_id = AtomId(1, name)
        self.bonds = [r for r in self.bonds if not r.has(atom_id)]
        self.angles = [r for r in self.angles if not r.has(atom_id)]
        self.torsions = [r for r in self.torsions if not r.has(atom_id)]
        self.chirs = [r for r in self.chirs if not r.has(atom_id)]
        for plane in self.planes:
            plane.ids = [i for i in plane.ids if i != atom_id]

    def find_bond(self, a1: AtomId, a2: AtomId) -> Optional[Bond]:
        for bond in self.bonds:
            if (bond.id1 == a1 and bond.id2 == a2) or (bond.id1 == a2 and bond.id2 == a1):
                return bond
        return None

    def find_angle(self, a1: AtomId, a2: AtomId, a3: AtomId) -> Optional[Angle]:
        for angle in self.angles:
            if angle.id2 == a2 and (
                (angle.id1 == a1 and angle.id3 == a3)
                or (angle.id1 == a3 and angle.id3 == a1)
            ):
                return angle
        return None

    def find_torsion(
        self, a1: AtomId, a2: AtomId, a3: AtomId, a4: AtomId
    ) -> Optional[Torsion]:
        for tor in self.torsions:
            if tor.atom_ids() in ((a1, a2, a3, a4), (a4, a3, a2, a1)):
                return tor
        return None

    def find_chir(self, ctr: AtomId, a1: AtomId, a2: AtomId, a3: AtomId) -> Optional[Chirality]:
        """Find a chirality with the same centre and the same set of ligands."""
        for chir in self.chirs:
            if chir.id_ctr == ctr and {chir.id1, chir.id2, chir.id3} == {a1, a2, a3}:
                return chir
        return None

    def find_plane(self, label: str) -> Optional[Plane]:
        for plane in self.planes:
            if plane.label == label:
                return plane
        return None

    def first_bonded_atom(self, name: str) -> Optional[AtomId]:
        atom_id = AtomId(1, name)
        for bond in self.bonds:
            other = bond.other(atom_id)
            if other is not None:
                return other
        return None
