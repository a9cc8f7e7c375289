"""
Ad-hoc restraints for residues that have no dictionary definition.

Bonds are guessed from interatomic distances and angles are taken from
the current coordinates, which gives a local topology good enough to
place riding hydrogens, but not a curated chemical description.
"""

from typing import List, Tuple

import numpy as np
from scipy.spatial.distance import pdist, squareform

from chemtopo.core.chemcomp import ChemComp, CompAtom, Group
from chemtopo.core.constants import (
    ADHOC_ANGLE_ESD,
    ADHOC_BOND_ESD,
    ADHOC_HYDROGEN_CUTOFF,
    ADHOC_MIN_BOND_CUTOFF,
    ADHOC_RADIUS_FACTOR,
    RADDEG,
    covalent_radius,
)
from chemtopo.core.geometry import calc_angle
from chemtopo.core.restraints import Angle, AtomId, Bond
from chemtopo.core.structures import Residue


def make_chemcomp_with_restraints(res: Residue) -> ChemComp:
    """
    Build a component with bond and angle restraints from coordinates.

    Only atoms in the same conformer as the first atom are used.
    Heavy atoms closer than max(2.0, 1.3 * larger covalent radius) are
    bonded, each hydrogen is bonded to its nearest heavy atom (within
    2.5 A). Ideal values are the observed ones, rounded.

    Args:
        res: Residue with coordinates

    Returns:
        ChemComp named after the residue, with no group
    """
    cc = ChemComp(name=res.name, group=Group.NULL)
    if not res.atoms:
        return cc
    first = res.atoms[0]
    for atom in res.atoms:
        if not atom.same_conformer(first):
            continue
        el = atom.element
        if el == "X":
            el = "N"
        elif el == "D":
            el = "H"
        cc.atoms.append(CompAtom(atom.name, el, float(atom.charge), el))

    atoms = res.atoms
    dist = squareform(pdist(np.array([a.pos for a in atoms])))
    in_conf = [a.same_conformer(first) for a in atoms]

    pairs: List[Tuple[int, int]] = []
    # heavy atoms
    for i, at1 in enumerate(atoms):
        if at1.is_hydrogen or not in_conf[i]:
            continue
        r1 = covalent_radius(at1.element)
        for j in range(i + 1, len(atoms)):
            at2 = atoms[j]
            if at2.is_hydrogen or not in_conf[j]:
                continue
            dmax = max(ADHOC_MIN_BOND_CUTOFF,
                       ADHOC_RADIUS_FACTOR * max(r1, covalent_radius(at2.element)))
            if dist[i, j] < dmax:
                pairs.append((i, j))
    # each hydrogen with the nearest heavy atom
    for i, at1 in enumerate(atoms):
        if not at1.is_hydrogen or not in_conf[i]:
            continue
        nearest = -1
        min_d = ADHOC_HYDROGEN_CUTOFF
        for j, at2 in enumerate(atoms):
            if not at2.is_hydrogen and at2.same_conformer(at1) and dist[i, j] < min_d:
                min_d = dist[i, j]
                nearest = j
        if nearest != -1:
            pairs.append((nearest, i))

    for n1, n2 in pairs:
        value = round(float(dist[n1, n2]), 3)
        cc.rt.bonds.append(Bond(AtomId(1, atoms[n1].name), AtomId(1, atoms[n2].name),
                                value=value, esd=ADHOC_BOND_ESD, type="unspec"))

    for i, (a1, a2) in enumerate(pairs):
        for b1, b2 in pairs[i + 1:]:
            if a1 == b1:
                triple = (a2, a1, b2)
            elif a1 == b2:
                triple = (a2, a1, b1)
            elif a2 == b1:
                triple = (a1, a2, b2)
            elif a2 == b2:
                triple = (a1, a2, b1)
            else:
                continue
            p1, p2, p3 = (atoms[n].pos for n in triple)
            value = round(calc_angle(p1, p2, p3) * RADDEG, 2)
            cc.rt.angles.append(Angle(*(AtomId(1, atoms[n].name) for n in triple),
                                      value=value, esd=ADHOC_ANGLE_ESD))
    return cc
