"""
Atom to restraint cross-reference of a finished topology.
"""

from collections import defaultdict
from typing import TYPE_CHECKING, Dict, List

from chemtopo.core.structures import Atom

if TYPE_CHECKING:
    from chemtopo.topology.topo import Topology


class TopologyIndex:
    """
    Multi-maps from an Atom to the restraint instances that involve it.

    Bonds are indexed by both atoms, angles by the central atom, torsions
    by the two central atoms, chiralities by the centre and planes by all
    their atoms. Read-only after build().
    """

    def __init__(self):
        self._bonds: Dict[Atom, list] = defaultdict(list)
        self._angles: Dict[Atom, list] = defaultdict(list)
        self._torsions: Dict[Atom, list] = defaultdict(list)
        self._chirs: Dict[Atom, list] = defaultdict(list)
        self._planes: Dict[Atom, list] = defaultdict(list)

    @classmethod
    def build(cls, topo: "Topology") -> "TopologyIndex":
        index = cls()
        for bond in topo.bonds:
            index._bonds[bond.atoms[0]].append(bond)
            if bond.atoms[1] is not bond.atoms[0]:
                index._bonds[bond.atoms[1]].append(bond)
        for ang in topo.angles:
            index._angles[ang.atoms[1]].append(ang)
        for tor in topo.torsions:
            index._torsions[tor.atoms[1]].append(tor)
            if tor.atoms[2] is not tor.atoms[1]:
                index._torsions[tor.atoms[2]].append(tor)
        for chir in topo.chirs:
            index._chirs[chir.atoms[0]].append(chir)
        for plane in topo.planes:
            for atom in plane.atoms:
                index._planes[atom].append(plane)
        return index

    def bonds(self, atom: Atom) -> List:
        return self._bonds.get(atom, [])

    def angles(self, atom: Atom) -> List:
        return self._angles.get(atom, [])

    def torsions(self, atom: Atom) -> List:
        return self._torsions.get(atom, [])

    def chiralities(self, atom: Atom) -> List:
        return self._chirs.get(atom, [])

    def planes(self, atom: Atom) -> List:
        return self._planes.get(atom, [])

    def bonded_atoms(self, atom: Atom) -> List[Atom]:
        return [b.other(atom) for b in self.bonds(atom)]

    def __len__(self) -> int:
        return len(self._bonds)
