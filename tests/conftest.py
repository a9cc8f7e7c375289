"""Pytest configuration and fixtures for chemtopo tests."""

import math

import numpy as np
import pytest

from chemtopo.core.geometry import position_from_angle_and_torsion
from chemtopo.core.structures import Atom, Chain, Model, Residue, SeqId, Structure
from chemtopo.io.monlib_reader import read_monomer_cif_string
from chemtopo.monlib import MonomerLibrary


def _place(x1, x2, x3, dist, angle_deg, torsion_deg):
    return position_from_angle_and_torsion(
        x1, x2, x3, dist, math.radians(angle_deg), math.radians(torsion_deg)
    )


# Ideal L-alanine coordinates (CA N CB C has a negative chiral volume)
ALA_COORDS = {
    "N": np.array([-0.966, 0.493, 1.500]),
    "CA": np.array([0.257, 0.418, 0.692]),
    "C": np.array([-0.094, 0.017, -0.716]),
    "O": np.array([-1.056, -0.682, -0.923]),
    "CB": np.array([1.204, -0.620, 1.296]),
}

ELEMENTS = {"N": "N", "CA": "C", "C": "C", "O": "O", "CB": "C", "SG": "S"}


def make_residue(name, num, coords, subchain="A"):
    res = Residue(name=name, seqid=SeqId(num), subchain=subchain)
    for atom_name, pos in coords.items():
        res.add_atom(Atom(name=atom_name, element=ELEMENTS.get(atom_name, atom_name[0]),
                          pos=np.array(pos, dtype=np.float64)))
    return res


def make_structure(residues_by_chain):
    """Structure with one model; residues_by_chain maps chain name to residues."""
    model = Model()
    for chain_name, residues in residues_by_chain.items():
        chain = Chain(name=chain_name)
        for res in residues:
            chain.add_residue(res)
        model.add_chain(chain)
    return Structure(name="test", models=[model])


def dipeptide_coords(omega=180.0, shift=0.0):
    """Coordinates of ALA 1 and GLY 2 built from ideal internal coordinates."""
    ala = dict(ALA_COORDS)
    n2 = _place(ala["O"], ala["CA"], ala["C"], 1.336, 116.2, 180.0)
    ca2 = _place(ala["CA"], ala["C"], n2, 1.451, 121.7, omega)
    c2 = _place(ala["C"], n2, ca2, 1.516, 112.5, -120.0)
    o2 = _place(n2, ca2, c2, 1.231, 120.8, 150.0)
    offset = np.array([shift, 0.0, 0.0])
    gly = {"N": n2 + offset, "CA": ca2 + offset, "C": c2 + offset, "O": o2 + offset}
    return ala, gly


@pytest.fixture
def monlib():
    """Bundled monomer library (a fresh copy for each test)."""
    return MonomerLibrary.bundled()


@pytest.fixture
def dipeptide():
    """ALA-GLY with a trans peptide bond."""
    ala, gly = dipeptide_coords()
    return make_structure({"A": [make_residue("ALA", 1, ala),
                                 make_residue("GLY", 2, gly)]})


@pytest.fixture
def cis_dipeptide():
    """ALA-GLY with omega = 0."""
    ala, gly = dipeptide_coords(omega=0.0)
    return make_structure({"A": [make_residue("ALA", 1, ala),
                                 make_residue("GLY", 2, gly)]})


@pytest.fixture
def broken_dipeptide():
    """ALA and GLY in one subchain, too far apart to be bonded."""
    ala, gly = dipeptide_coords(shift=10.0)
    return make_structure({"A": [make_residue("ALA", 1, ala),
                                 make_residue("GLY", 2, gly)]})


@pytest.fixture
def ammonia():
    """A single NH3 molecule without hydrogens."""
    res = Residue(name="NH3", seqid=SeqId(1), subchain="B")
    res.add_atom(Atom(name="N", element="N", pos=np.array([1.0, 2.0, 3.0])))
    return make_structure({"B": [res]})


@pytest.fixture
def water():
    res = Residue(name="HOH", seqid=SeqId(101), subchain="W")
    res.add_atom(Atom(name="O", element="O", pos=np.array([5.0, 5.0, 5.0])))
    return make_structure({"W": [res]})


CHIRAL_LIGAND_CIF = """\
data_comp_list
loop_
_chem_comp.id
_chem_comp.three_letter_code
_chem_comp.name
_chem_comp.group
LIG LIG 'TEST LIGAND' non-polymer
data_comp_LIG
loop_
_chem_comp_atom.comp_id
_chem_comp_atom.atom_id
_chem_comp_atom.type_symbol
_chem_comp_atom.type_energy
LIG C1 C CH1
LIG C2 C CH3
LIG N3 N NH2
LIG H1 H H
loop_
_chem_comp_bond.comp_id
_chem_comp_bond.atom_id_1
_chem_comp_bond.atom_id_2
_chem_comp_bond.type
_chem_comp_bond.value_dist
_chem_comp_bond.value_dist_esd
LIG C1 C2 single 1.500 0.020
LIG C1 N3 single 1.470 0.020
LIG C1 H1 single 0.980 0.020
loop_
_chem_comp_angle.comp_id
_chem_comp_angle.atom_id_1
_chem_comp_angle.atom_id_2
_chem_comp_angle.atom_id_3
_chem_comp_angle.value_angle
_chem_comp_angle.value_angle_esd
LIG C2 C1 N3 109.500 3.000
LIG C2 C1 H1 109.500 3.000
LIG N3 C1 H1 109.500 3.000
loop_
_chem_comp_chir.comp_id
_chem_comp_chir.id
_chem_comp_chir.atom_id_centre
_chem_comp_chir.atom_id_1
_chem_comp_chir.atom_id_2
_chem_comp_chir.atom_id_3
_chem_comp_chir.volume_sign
LIG chir_01 C1 C2 N3 H1 {sign}
"""


@pytest.fixture
def chiral_ligand_cif():
    """Dictionary text of a chiral ligand; format with sign=positiv/negativ/both."""
    return CHIRAL_LIGAND_CIF


@pytest.fixture
def chiral_ligand():
    """LIG with the heavy atoms around the chiral centre, no hydrogen."""
    theta = math.radians(109.5)
    res = Residue(name="LIG", seqid=SeqId(1), subchain="L")
    res.add_atom(Atom(name="C1", element="C", pos=np.zeros(3)))
    res.add_atom(Atom(name="C2", element="C", pos=np.array([1.5, 0.0, 0.0])))
    res.add_atom(Atom(name="N3", element="N",
                      pos=np.array([1.47 * math.cos(theta), 1.47 * math.sin(theta), 0.0])))
    return make_structure({"L": [res]})


@pytest.fixture
def ligand_monlib():
    """Factory: bundled library plus LIG with the given chirality sign."""

    def make(sign):
        monlib = MonomerLibrary.bundled()
        monlib.add(read_monomer_cif_string(CHIRAL_LIGAND_CIF.format(sign=sign)))
        return monlib

    return make


@pytest.fixture
def disulfide():
    """Two cysteines (CA, CB, SG only) in separate chains, SG-SG about 2.0 A apart."""
    cys1 = {"CA": [0.0, 0.0, 0.0], "CB": [1.53, 0.0, 0.0], "SG": [2.27, 1.65, 0.0]}
    cys2 = {"CA": [3.76, 4.04, 0.0], "CB": [3.02, 2.39, 0.5], "SG": [3.60, 1.90, -1.50]}
    return make_structure({"A": [make_residue("CYS", 10, cys1, "A")],
                           "B": [make_residue("CYS", 20, cys2, "B")]})
