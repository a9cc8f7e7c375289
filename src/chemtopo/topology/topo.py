"""
Topology: the restraint graph of one model.

Concrete restraints (instances) bind restraint templates to Atom
objects. Residues refer to the instances made from their own component
through Rules, links through their own list of Rules.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, List, NamedTuple, Optional, Tuple, Union
import math

import numpy as np

from chemtopo.core.chemcomp import Aliasing, ChemComp, Group
from chemtopo.core.geometry import (
    calc_angle,
    calc_chiral_volume,
    calc_distance,
    calc_torsion,
    chiral_abs_volume,
)
from chemtopo.core.constants import RADDEG
from chemtopo.core.restraints import Angle, Bond, Chirality, Plane, Restraints, Torsion
from chemtopo.core.structures import (
    Asu,
    Atom,
    AtomAddress,
    Chain,
    PolymerType,
    Residue,
)
from chemtopo.topology.index import TopologyIndex


class RKind(Enum):
    """Kind of concrete restraint a Rule points to."""

    BOND = "bond"
    ANGLE = "angle"
    TORSION = "torsion"
    CHIRALITY = "chirality"
    PLANE = "plane"


class Rule(NamedTuple):
    kind: RKind
    index: int


@dataclass(eq=False)
class BondInstance:
    restr: Bond
    atoms: Tuple[Atom, Atom]

    def calculate(self) -> float:
        return calc_distance(self.atoms[0].pos, self.atoms[1].pos)

    def other(self, atom: Atom) -> Optional[Atom]:
        if self.atoms[0] is atom:
            return self.atoms[1]
        if self.atoms[1] is atom:
            return self.atoms[0]
        return None


@dataclass(eq=False)
class AngleInstance:
    restr: Angle
    atoms: Tuple[Atom, Atom, Atom]

    def calculate(self) -> float:
        """Current angle in degrees."""
        a = self.atoms
        return calc_angle(a[0].pos, a[1].pos, a[2].pos) * RADDEG


@dataclass(eq=False)
class TorsionInstance:
    restr: Torsion
    atoms: Tuple[Atom, Atom, Atom, Atom]

    def calculate(self) -> float:
        """Current dihedral angle in degrees."""
        return calc_torsion(*(a.pos for a in self.atoms))


@dataclass(eq=False)
class ChiralityInstance:
    restr: Chirality
    atoms: Tuple[Atom, Atom, Atom, Atom]  # centre first

    def calculate(self) -> float:
        """Signed chiral volume of the current coordinates."""
        return calc_chiral_volume(*(a.pos for a in self.atoms))

    def check(self) -> bool:
        """True if the current handedness agrees with the restraint."""
        return not self.restr.is_wrong(self.calculate())


@dataclass(eq=False)
class PlaneInstance:
    restr: Plane
    atoms: List[Atom]

    def has(self, atom: Atom) -> bool:
        return any(a is atom for a in self.atoms)


Instance = Union[BondInstance, AngleInstance, TorsionInstance,
                 ChiralityInstance, PlaneInstance]


@dataclass(eq=False)
class Link:
    """
    Bond between two residues described by a link template.

    An empty link_id means the link is disabled; "gap" marks a polymer
    chain break.
    """

    link_id: str = ""
    res1: Optional[Residue] = None
    res2: Optional[Residue] = None
    alt1: str = ""
    alt2: str = ""
    aliasing1: Optional[Aliasing] = None
    aliasing2: Optional[Aliasing] = None
    asu: Asu = Asu.ANY
    link_rules: List[Rule] = field(default_factory=list)

    def copy(self) -> "Link":
        return Link(self.link_id, self.res1, self.res2, self.alt1, self.alt2,
                    self.aliasing1, self.aliasing2, self.asu, [])


class Mod(NamedTuple):
    """A modification to be applied to a residue's component."""

    id: str
    alias: Group = Group.NULL
    altloc: str = ""


class FinalChemComp(NamedTuple):
    altloc: str
    cc: ChemComp


class ChemCompKey(NamedTuple):
    """Cache key: component name and the applied (alias group, mod id) pairs."""

    name: str
    mods: Tuple[Tuple[Group, str], ...] = ()


@dataclass(eq=False)
class ResInfo:
    """Topology record of one residue."""

    res: Residue
    orig_chemcomp: Optional[ChemComp] = None
    prev: List[Link] = field(default_factory=list)  # links to previous residues
    mods: List[Mod] = field(default_factory=list)
    chemcomps: List[FinalChemComp] = field(default_factory=list)
    monomer_rules: List[Rule] = field(default_factory=list)

    def add_mod(self, mod_id: str, aliasing: Optional[Aliasing], altloc: str) -> None:
        if not mod_id:
            return
        mod = Mod(mod_id, aliasing.group if aliasing is not None else Group.NULL, altloc)
        if mod not in self.mods:
            self.mods.append(mod)

    def get_final_chemcomp(self, altloc: str) -> ChemComp:
        """Effective component for an altloc (the only one if there is one)."""
        if len(self.chemcomps) > 1:
            for final in self.chemcomps:
                if final.altloc == altloc:
                    return final.cc
        return self.chemcomps[0].cc


@dataclass
class ChainInfo:
    """Topology record of one subchain."""

    chain: Chain
    subchain_name: str
    entity_id: str = ""
    polymer: bool = False
    polymer_type: PolymerType = PolymerType.UNKNOWN
    res_infos: List[ResInfo] = field(default_factory=list)

    def groups(self) -> List[List[ResInfo]]:
        """Residue records grouped by sequence position (microheterogeneity)."""
        groups: List[List[ResInfo]] = []
        for ri in self.res_infos:
            if groups and ri.res.group_idx > 0:
                groups[-1].append(ri)
            else:
                groups.append([ri])
        return groups


class Topology:
    """
    Restraint graph of a model, with the data it was made from.

    Attributes:
        chain_infos: Per-subchain records, in model order
        extras: Links from explicit connections
        bonds, angles, torsions, chirs, planes: Concrete restraints
        cc_cache: Effective components shared by residues with the same
            component and modifications
        cc_storage: Ad-hoc components, one per residue
        rt_storage: Link restraints renamed for aliasing
        warnings: Diagnostic messages collected during the work
        index: Atom to restraint cross-reference
    """

    def __init__(self, verbose: bool = False):
        self.verbose = verbose
        self.chain_infos: List[ChainInfo] = []
        self.extras: List[Link] = []
        self.bonds: List[BondInstance] = []
        self.angles: List[AngleInstance] = []
        self.torsions: List[TorsionInstance] = []
        self.chirs: List[ChiralityInstance] = []
        self.planes: List[PlaneInstance] = []
        self.cc_cache: Dict[ChemCompKey, ChemComp] = {}
        self.cc_storage: List[ChemComp] = []
        self.rt_storage: List[Restraints] = []
        self.warnings: List[str] = []
        self.index = TopologyIndex()
        self._resinfo_of: Dict[Residue, ResInfo] = {}

    def err(self, message: str) -> None:
        """Record a recoverable problem."""
        self.warnings.append(message)
        if self.verbose:
            print(f"WARNING: {message}")

    # --- records ---

    def add_chain_info(self, chain_info: ChainInfo) -> ChainInfo:
        self.chain_infos.append(chain_info)
        for ri in chain_info.res_infos:
            self._resinfo_of[ri.res] = ri
        return chain_info

    def res_infos(self) -> Iterator[ResInfo]:
        for ci in self.chain_infos:
            yield from ci.res_infos

    def find_resinfo(self, res: Residue) -> Optional[ResInfo]:
        return self._resinfo_of.get(res)

    def polymer_links(self) -> Iterator[Link]:
        for ri in self.res_infos():
            yield from ri.prev

    def all_links(self) -> Iterator[Link]:
        yield from self.polymer_links()
        yield from self.extras

    def find_polymer_link(self, a1: AtomAddress, a2: AtomAddress) -> Optional[Link]:
        """
        Find the polymer link between the residues of two addresses,
        in either order. Altlocs of the addresses must match the link's.
        """
        for ci in self.chain_infos:
            if ci.chain.name != a1.chain_name or ci.chain.name != a2.chain_name:
                continue
            for ri in ci.res_infos:
                for link in ri.prev:
                    if ((_matches(a1, link.res1) and _matches(a2, link.res2)
                         and a1.altloc == link.alt1 and a2.altloc == link.alt2)
                            or (_matches(a2, link.res1) and _matches(a1, link.res2)
                                and a2.altloc == link.alt1 and a1.altloc == link.alt2)):
                        return link
        return None

    # --- restraint queries ---

    def resolve(self, rule: Rule) -> Instance:
        container = {
            RKind.BOND: self.bonds,
            RKind.ANGLE: self.angles,
            RKind.TORSION: self.torsions,
            RKind.CHIRALITY: self.chirs,
            RKind.PLANE: self.planes,
        }[rule.kind]
        return container[rule.index]

    def take_bond(self, a1: Atom, a2: Atom) -> Optional[Bond]:
        for bond in self.index.bonds(a1):
            if bond.other(a1) is a2:
                return bond.restr
        return None

    def take_angle(self, a1: Atom, a2: Atom, a3: Atom) -> Optional[Angle]:
        for ang in self.index.angles(a2):
            if ((ang.atoms[0] is a1 and ang.atoms[2] is a3)
                    or (ang.atoms[0] is a3 and ang.atoms[2] is a1)):
                return ang.restr
        return None

    def get_chirality(self, ctr: Atom) -> Optional[ChiralityInstance]:
        chirs = self.index.chiralities(ctr)
        return chirs[0] if chirs else None

    def ideal_chiral_abs_volume(self, chir: ChiralityInstance) -> float:
        """
        Absolute chiral volume from the ideal bonds and angles around the
        centre, NaN if any of them is not restrained.
        """
        c, a1, a2, a3 = chir.atoms
        bonds = [self.take_bond(c, a) for a in (a1, a2, a3)]
        angles = [self.take_angle(a1, c, a2), self.take_angle(a2, c, a3),
                  self.take_angle(a3, c, a1)]
        if any(r is None for r in bonds + angles):
            return math.nan
        return chiral_abs_volume(*(b.value for b in bonds), *(a.value for a in angles))

    def count(self) -> Dict[str, int]:
        return {
            "bonds": len(self.bonds),
            "angles": len(self.angles),
            "torsions": len(self.torsions),
            "chiralities": len(self.chirs),
            "planes": len(self.planes),
        }

    def __repr__(self) -> str:
        counts = ", ".join(f"{n} {k}" for k, n in self.count().items())
        return f"Topology({len(self.chain_infos)} subchains, {counts})"


def _matches(address: AtomAddress, res: Optional[Residue]) -> bool:
    return (res is not None and address.seqid == res.seqid
            and address.res_name == res.name)


def restraint_deviations(topo: Topology) -> np.ndarray:
    """
    Deviations (model - ideal) of all bonds with positioned atoms.

    Returns:
        Array of deviations in Angstroms
    """
    devs = [b.calculate() - b.restr.value for b in topo.bonds
            if all(a.has_position for a in b.atoms)]
    return np.array(devs, dtype=np.float64)
