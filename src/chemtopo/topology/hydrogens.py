"""
Riding hydrogen placement.

Hydrogens are placed one heavy atom at a time, from ideal bond lengths
and the angle, torsion, plane and chirality restraints around the heavy
atom. The construction depends on how many non-hydrogen neighbours of
the heavy atom have known positions (0, 1 or 2).
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import List

import numpy as np

from chemtopo.core.chemcomp import CompAtom
from chemtopo.core.constants import DEGRAD, LINEAR_ANGLE_TOL, TETRAHEDRAL_ANGLE
from chemtopo.core.geometry import (
    calc_angle_v,
    has_nan,
    normalize,
    position_from_angle_and_torsion,
    position_from_two_angles,
    rotate_by_axis,
)
from chemtopo.core.restraints import ChiralityType
from chemtopo.core.structures import Atom, Residue
from chemtopo.topology.topo import ResInfo, Topology


class HydrogenPlacementError(RuntimeError):
    """Positions of hydrogens bonded to one atom cannot be determined."""


class HydrogenChange(Enum):
    """What to do with hydrogens when preparing a topology."""

    NO_CHANGE = "none"
    REMOVE = "remove"
    READD = "readd"
    READD_BUT_WATER = "readd-but-water"


@dataclass
class BondedAtom:
    atom: Atom
    dist: float  # ideal bond length

    @property
    def pos(self) -> np.ndarray:
        return self.atom.pos


def place_hydrogens(atom: Atom, topo: Topology) -> None:
    """
    Place hydrogens bonded to a heavy atom.

    Occupancy of a hydrogen is set to 0 when its position is arbitrary
    (e.g. rotation around a single bond with no reference).

    Args:
        atom: Heavy atom
        topo: Finalized topology

    Raises:
        HydrogenPlacementError: if the geometry cannot be determined;
            occupancies of all hydrogens bonded to atom are zeroed first
    """
    known: List[BondedAtom] = []  # heavy atoms with known positions
    hs: List[BondedAtom] = []     # hydrogens (unknown)
    for bond in topo.index.bonds(atom):
        other = bond.other(atom)
        if other is None or other is atom:
            continue
        if other.is_hydrogen:
            hs.append(BondedAtom(other, bond.restr.value))
        elif other.has_position:
            known.append(BondedAtom(other, bond.restr.value))

    if not hs:
        return

    def giveup(message: str):
        for h in hs:
            h.atom.occ = 0.0
        raise HydrogenPlacementError(message)

    pos = atom.pos

    # only hydrogens, directions can be picked arbitrarily
    if not known:
        for h in hs:
            h.atom.occ = 0.0
        if len(hs) > 4:
            giveup(f"{len(hs)} hydrogens bonded to {atom.name} and no heavy atoms")
        hs[0].atom.pos = pos + np.array([hs[0].dist, 0.0, 0.0])
        if len(hs) > 1:
            theta = math.pi
            ang = topo.take_angle(hs[1].atom, atom, hs[0].atom)
            if ang is not None:
                theta = ang.radians()
            hs[1].atom.pos = pos + np.array([hs[1].dist * math.cos(theta),
                                             hs[1].dist * math.sin(theta), 0.0])
        if len(hs) == 3:
            # only NH3-like groups have this configuration
            y = 2 * pos[1] - hs[1].pos[1]
            hs[2].atom.pos = np.array([hs[1].pos[0], y, hs[1].pos[2]])
        elif len(hs) == 4:
            # CH4 and NH4
            ang1 = topo.take_angle(hs[2].atom, atom, hs[0].atom)
            ang2 = topo.take_angle(hs[2].atom, atom, hs[1].atom)
            theta1 = (ang1.value if ang1 is not None else TETRAHEDRAL_ANGLE) * DEGRAD
            theta2 = (ang2.value if ang2 is not None else TETRAHEDRAL_ANGLE) * DEGRAD
            p1, p2 = position_from_two_angles(pos, hs[0].pos, hs[1].pos,
                                              hs[2].dist, theta1, theta2)
            if has_nan(p1):
                giveup(f"Cannot place four hydrogens on {atom.name} from the angle restraints.")
            hs[2].atom.pos = p1
            hs[3].atom.pos = p2

    # one heavy atom and hydrogens
    elif len(known) == 1:
        h = hs[0]
        heavy = known[0]
        angle = topo.take_angle(h.atom, atom, heavy.atom)
        if angle is None:
            giveup(f"No angle restraint for {h.atom.name}, giving up.")
        if abs(angle.value - 180.0) < LINEAR_ANGLE_TOL:
            u = pos - heavy.pos
            h.atom.pos = pos + u * (h.dist / np.linalg.norm(u))
            return
        theta = angle.radians()
        tau = 0.0
        tau_end = None
        for plane in topo.index.planes(h.atom):
            if len(plane.atoms) > 3 and plane.has(atom) and plane.has(heavy.atom):
                for a in plane.atoms:
                    if (a is not h.atom and a is not atom and a is not heavy.atom
                            and a.has_position):
                        tau_end = a
                        break
                break
        if tau_end is None:
            # using one dihedral angle
            for tor in topo.index.torsions(atom):
                a = tor.atoms
                if (a[0] is h.atom and not a[3].is_hydrogen and a[3].has_position
                        and a[1] is atom and a[2] is heavy.atom):
                    tau = tor.restr.value * DEGRAD
                    tau_end = a[3]
                    break
                if (a[3] is h.atom and not a[0].is_hydrogen and a[0].has_position
                        and a[1] is heavy.atom and a[2] is atom):
                    tau = tor.restr.value * DEGRAD
                    tau_end = a[0]
                    break
        ref = tau_end.pos if tau_end is not None else np.zeros(3)
        h.atom.pos = position_from_angle_and_torsion(ref, heavy.pos, pos,
                                                     h.dist, theta, tau)
        if has_nan(h.atom.pos):
            giveup(f"Cannot place {h.atom.name} from the restraints around {atom.name}.")
        if tau_end is None:
            h.atom.occ = 0.0  # the position is not unique
        if len(hs) > 1:
            giveup("not implemented yet: "
                   f"{len(hs)} hydrogens and one heavy atom bonded to {atom.name}")

    # two heavy atoms and hydrogens
    elif len(known) == 2:
        if len(hs) > 2:
            giveup("Unusual: atom bonded to two heavy atoms and 3+ hydrogens.")
        ang1 = topo.take_angle(hs[0].atom, atom, known[0].atom)
        ang2 = topo.take_angle(hs[0].atom, atom, known[1].atom)
        ang3 = topo.take_angle(known[0].atom, atom, known[1].atom)
        if ang1 is None or ang2 is None:
            giveup("Missing angle restraint, giving up.")
        theta1 = ang1.radians()
        theta2 = ang2.radians()
        if ang3 is not None:
            # all in one plane if the angles sum to 360 degrees;
            # the observed remainder is split in proportion to the ideal angles
            theta3 = ang3.radians()
            v12 = known[0].pos - pos
            v13 = known[1].pos - pos
            cur_theta3 = calc_angle_v(v12, v13)
            two_pi = 2 * math.pi
            if theta1 + theta2 + max(theta3, cur_theta3) + 0.01 > two_pi:
                ratio = (two_pi - cur_theta3) / (theta1 + theta2)
                axis = normalize(np.cross(v13, v12))
                v14 = rotate_by_axis(v12, axis, theta1 * ratio)
                hs[0].atom.pos = pos + v14 * (hs[0].dist / np.linalg.norm(v14))
                return
        first, second = position_from_two_angles(pos, known[0].pos, known[1].pos,
                                                 hs[0].dist, theta1, theta2)
        if has_nan(first):
            giveup(f"Angle restraints of {hs[0].atom.name} bonded to {atom.name} "
                   "cannot be satisfied.")
        hs[0].atom.pos = first
        if len(hs) == 1:
            chir = topo.get_chirality(atom)
            if chir is not None and chir.restr.sign != ChiralityType.BOTH:
                if not chir.check():
                    hs[0].atom.pos = second
            else:
                hs[0].atom.occ = 0.0
        else:
            hs[1].atom.pos = second

    else:
        giveup(f"not implemented yet: {len(hs)} hydrogens and "
               f"{len(known)} heavy atoms bonded to {atom.name}")


def place_hydrogens_on_all_atoms(topo: Topology) -> int:
    """
    Place hydrogens bonded to every heavy atom of the topology.

    Failures are recorded as topology warnings and don't stop the work.

    Returns:
        Number of heavy atoms for which placement failed
    """
    failed = 0
    for ci in topo.chain_infos:
        for ri in ci.res_infos:
            for atom in ri.res.atoms:
                if atom.is_hydrogen:
                    continue
                try:
                    place_hydrogens(atom, topo)
                except HydrogenPlacementError as e:
                    failed += 1
                    alt = f".{atom.altloc}" if atom.altloc else ""
                    topo.err(f"Placing of hydrogen bonded to {ci.chain.name}/"
                             f"{ri.res.name} {ri.res.seqid}/{atom.name}{alt} "
                             f"failed:\n  {e}")
    return failed


def remove_hydrogens(res: Residue) -> None:
    """Remove hydrogen and deuterium atoms from a residue."""
    res.atoms = [a for a in res.atoms if not a.is_hydrogen]


def add_hydrogens_without_positions(ri: ResInfo) -> None:
    """
    Add hydrogens defined in the effective component, with unknown
    positions, next to their heavy atoms.

    Each hydrogen is added for every conformer of the atom it is bonded
    to. If the component has no bond for a hydrogen it is not added.
    """
    res = ri.res
    new_atoms: List[Atom] = []
    for atom in res.atoms:
        new_atoms.append(atom)
        cc = ri.get_final_chemcomp(atom.altloc)
        for comp_atom in cc.atoms:
            if not comp_atom.is_hydrogen:
                continue
            heavy = cc.rt.first_bonded_atom(comp_atom.id)
            if heavy is None or heavy.atom != atom.name:
                continue
            new_atoms.append(_new_hydrogen(comp_atom, atom))
    res.atoms = new_atoms


def _new_hydrogen(comp_atom: CompAtom, heavy: Atom) -> Atom:
    return Atom(
        name=comp_atom.id,
        element=comp_atom.element,
        altloc=heavy.altloc,
        occ=heavy.occ,
        b_iso=heavy.b_iso,
        charge=int(round(comp_atom.charge)),
    )
