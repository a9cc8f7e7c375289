"""
Dictionary definitions: chemical components, links and modifications.
"""

import copy
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple, Union

from chemtopo.core.constants import is_hydrogen_element, normalize_element
from chemtopo.core.restraints import (
    Angle,
    AtomId,
    Bond,
    Chirality,
    Plane,
    Restraints,
    Torsion,
)


class ModificationError(RuntimeError):
    """A modification cannot be applied to a chemical component."""


class Group(Enum):
    """Monomer group (_chem_comp.group) of a chemical component."""

    PEPTIDE = "peptide"
    P_PEPTIDE = "P-peptide"
    M_PEPTIDE = "M-peptide"
    DNA_RNA = "DNA/RNA"
    DNA = "DNA"
    RNA = "RNA"
    PYRANOSE = "pyranose"
    KETOPYRANOSE = "ketopyranose"
    FURANOSE = "furanose"
    NON_POLYMER = "non-polymer"
    NULL = "."

    @classmethod
    def from_string(cls, text: Optional[str]) -> "Group":
        """
        Parse a group name as written in monomer dictionaries.

        Only the first four letters matter, so "L-peptide" is a peptide
        and "non-polymer" matches "non-".
        """
        if not text:
            return cls.NULL
        key = text.strip("'\"").lower()[:4]
        return _GROUP_PREFIXES.get(key, cls.NULL)

    @property
    def is_peptide(self) -> bool:
        return self in (Group.PEPTIDE, Group.P_PEPTIDE, Group.M_PEPTIDE)

    @property
    def is_nucleotide(self) -> bool:
        return self in (Group.DNA_RNA, Group.DNA, Group.RNA)


_GROUP_PREFIXES = {
    "pept": Group.PEPTIDE,
    "l-pe": Group.PEPTIDE,
    "p-pe": Group.P_PEPTIDE,
    "m-pe": Group.M_PEPTIDE,
    "dna": Group.DNA,
    "rna": Group.RNA,
    "dna/": Group.DNA_RNA,
    "pyra": Group.PYRANOSE,
    "keto": Group.KETOPYRANOSE,
    "fura": Group.FURANOSE,
    "non-": Group.NON_POLYMER,
}


@dataclass
class CompAtom:
    id: str
    element: str
    charge: float = 0.0
    chem_type: str = ""

    def __post_init__(self):
        self.element = normalize_element(self.element)

    @property
    def is_hydrogen(self) -> bool:
        return is_hydrogen_element(self.element)


@dataclass
class Aliasing:
    """
    Alternative atom naming used when a component plays the role of
    another group (e.g. a modified amino acid acting as a peptide).

    related holds (name in this component, standard name) pairs.
    """

    group: Group
    related: List[Tuple[str, str]] = field(default_factory=list)

    def name_from_alias(self, standard_name: str) -> Optional[str]:
        for name, std in self.related:
            if std == standard_name:
                return name
        return None


@dataclass
class ChemComp:
    """Idealized restraints of one residue type."""

    name: str
    group: Group = Group.NULL
    atoms: List[CompAtom] = field(default_factory=list)
    rt: Restraints = field(default_factory=Restraints)
    aliases: List[Aliasing] = field(default_factory=list)

    def find_atom(self, atom_id: str) -> Optional[CompAtom]:
        for atom in self.atoms:
            if atom.id == atom_id:
                return atom
        return None

    def has_atom(self, atom_id: str) -> bool:
        return self.find_atom(atom_id) is not None

    def atom_index(self, atom_id: str) -> int:
        """Position of the atom in the dictionary, len(atoms) if absent."""
        for i, atom in enumerate(self.atoms):
            if atom.id == atom_id:
                return i
        return len(self.atoms)

    def get_aliasing(self, group: Group) -> Optional[Aliasing]:
        for aliasing in self.aliases:
            if aliasing.group == group:
                return aliasing
        return None

    def remove_atom(self, atom_id: str) -> bool:
        """Remove the atom and all restraints that refer to it."""
        atom = self.find_atom(atom_id)
        if atom is None:
            return False
        self.atoms.remove(atom)
        self.rt.remove_atom(atom_id)
        return True

    def copy(self) -> "ChemComp":
        return copy.deepcopy(self)


@dataclass
class LinkSide:
    """One side of a link: a specific component or a monomer group."""

    comp: str = ""
    mod: str = ""
    group: Group = Group.NULL

    def matches_group(self, res_group: Group) -> bool:
        if self.group == Group.NULL:
            return False
        return (res_group == self.group
                or (self.group == Group.PEPTIDE and res_group.is_peptide)
                or (self.group == Group.DNA_RNA and res_group.is_nucleotide))

    def specificity(self) -> int:
        if self.comp:
            return 3
        return 1 if self.group in (Group.P_PEPTIDE, Group.M_PEPTIDE) else 0


@dataclass
class ChemLink:
    """Restraints between two residues, with modifications of each side."""

    id: str
    name: str = ""
    side1: LinkSide = field(default_factory=LinkSide)
    side2: LinkSide = field(default_factory=LinkSide)
    rt: Restraints = field(default_factory=Restraints)

    @property
    def is_auto(self) -> bool:
        return self.name.startswith("auto-")


@dataclass
class AtomMod:
    """_chem_mod_atom row: func is "a" (add), "d" (delete) or "c" (change)."""

    func: str
    old_id: str
    new_id: str = ""
    element: str = ""
    charge: float = math.nan
    chem_type: str = ""


RestraintTemplate = Union[Bond, Angle, Torsion, Chirality, Plane]


@dataclass
class ChemMod:
    """
    A named edit of a chemical component.

    restraint_mods holds (func, template) pairs; NaN values (and a
    negative torsion period) in a "c" template leave the corresponding
    value unchanged. Plane entries
    list a single atom to add to or delete from the plane.
    """

    id: str
    name: str = ""
    comp_id: str = ""
    group_id: str = ""
    atom_mods: List[AtomMod] = field(default_factory=list)
    restraint_mods: List[Tuple[str, RestraintTemplate]] = field(default_factory=list)

    def apply_to(self, chemcomp: ChemComp, alias_group: Group = Group.NULL) -> None:
        """
        Modify chemcomp in place.

        Args:
            chemcomp: Component to modify (a private copy)
            alias_group: If set, atom names in this modification are
                standard names of the given group's aliasing

        Raises:
            ModificationError: if a referenced atom or aliasing is missing
        """
        aliasing = None
        if alias_group != Group.NULL:
            aliasing = chemcomp.get_aliasing(alias_group)
            if aliasing is None:
                raise ModificationError(f"no aliasing for group {alias_group.value}")

        def real_name(atom_id: str) -> str:
            if aliasing is not None:
                name = aliasing.name_from_alias(atom_id)
                if name is not None:
                    return name
            return atom_id

        def real_id(atom_id: AtomId) -> AtomId:
            return AtomId(atom_id.comp, real_name(atom_id.atom))

        for mod in self.atom_mods:
            if mod.func == "a":
                if not chemcomp.has_atom(mod.new_id):
                    chemcomp.atoms.append(CompAtom(
                        mod.new_id, mod.element or "X",
                        0.0 if math.isnan(mod.charge) else mod.charge,
                        mod.chem_type))
            elif mod.func == "d":
                if not chemcomp.remove_atom(real_name(mod.old_id)):
                    raise ModificationError(f"atom not found: {mod.old_id}")
            elif mod.func == "c":
                name = real_name(mod.old_id)
                atom = chemcomp.find_atom(name)
                if atom is None:
                    raise ModificationError(f"atom not found: {mod.old_id}")
                if mod.new_id and mod.new_id != name:
                    atom.id = mod.new_id
                    chemcomp.rt.rename_atom(AtomId(1, name), mod.new_id)
                if mod.element:
                    atom.element = normalize_element(mod.element)
                if not math.isnan(mod.charge):
                    atom.charge = mod.charge
                if mod.chem_type:
                    atom.chem_type = mod.chem_type

        rt = chemcomp.rt
        for func, tmpl in self.restraint_mods:
            if isinstance(tmpl, Plane):
                _apply_plane_mod(rt, func, tmpl, real_id)
                continue
            ids = [real_id(i) for i in tmpl.atom_ids()]
            if isinstance(tmpl, Bond):
                found, container = rt.find_bond(*ids), rt.bonds
            elif isinstance(tmpl, Angle):
                found, container = rt.find_angle(*ids), rt.angles
            elif isinstance(tmpl, Torsion):
                found, container = rt.find_torsion(*ids), rt.torsions
            else:
                found, container = rt.find_chir(*ids), rt.chirs
            if func == "d":
                if found is not None:
                    container.remove(found)
            elif found is not None:
                _update_values(found, tmpl)
            elif func == "a":
                added = copy.deepcopy(tmpl)
                for old, new in zip(tmpl.atom_ids(), ids):
                    added.rename(old, new.atom)
                if isinstance(added, Torsion) and added.period < 0:
                    added.period = 0
                container.append(added)


def _update_values(restr, mod) -> None:
    if isinstance(restr, Chirality):
        restr.sign = mod.sign
        return
    for attr in ("value", "esd", "value_nucleus", "esd_nucleus", "period"):
        new = getattr(mod, attr, None)
        if new is None or (isinstance(new, float) and math.isnan(new)):
            continue
        if attr == "period" and new < 0:
            continue
        setattr(restr, attr, new)


def _apply_plane_mod(rt: Restraints, func: str, mod: Plane, real_id) -> None:
    plane = rt.find_plane(mod.label)
    ids = [real_id(i) for i in mod.ids]
    if func == "a":
        if plane is None:
            plane = Plane(mod.label, [], mod.esd)
            rt.planes.append(plane)
        for atom_id in ids:
            if atom_id not in plane.ids:
                plane.ids.append(atom_id)
    elif func == "d" and plane is not None:
        plane.ids = [i for i in plane.ids if i not in ids]
