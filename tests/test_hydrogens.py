"""Tests for hydrogen removal, addition and placement."""

import math

import numpy as np
import pytest

from conftest import ALA_COORDS, CHIRAL_LIGAND_CIF, make_residue, make_structure

from chemtopo import prepare_topology
from chemtopo.core.geometry import calc_angle, calc_chiral_volume, calc_distance, calc_torsion
from chemtopo.core.structures import Atom, AtomAddress, Connection, Residue, SeqId
from chemtopo.io.monlib_reader import read_monomer_cif_string
from chemtopo.monlib import MonomerLibrary
from chemtopo.topology import (
    HydrogenChange,
    HydrogenPlacementError,
    place_hydrogens,
    place_hydrogens_on_all_atoms,
    remove_hydrogens,
)


SMALL_MOLECULES_CIF = """\
data_comp_list
loop_
_chem_comp.id
_chem_comp.three_letter_code
_chem_comp.name
_chem_comp.group
HCN HCN 'HYDROGEN CYANIDE' non-polymer
EOH EOH 'ETHANOL'          non-polymer
MIM MIM 'METHANIMINE'      non-polymer
CH4 CH4 'METHANE'          non-polymer
XH5 XH5 'PHOSPHORANE'      non-polymer
data_comp_HCN
loop_
_chem_comp_atom.comp_id
_chem_comp_atom.atom_id
_chem_comp_atom.type_symbol
_chem_comp_atom.type_energy
HCN C1 C CSP
HCN N1 N NS
HCN H1 H H
loop_
_chem_comp_bond.comp_id
_chem_comp_bond.atom_id_1
_chem_comp_bond.atom_id_2
_chem_comp_bond.type
_chem_comp_bond.value_dist
_chem_comp_bond.value_dist_esd
HCN C1 N1 triple 1.156 0.020
HCN C1 H1 single 1.066 0.020
loop_
_chem_comp_angle.comp_id
_chem_comp_angle.atom_id_1
_chem_comp_angle.atom_id_2
_chem_comp_angle.atom_id_3
_chem_comp_angle.value_angle
_chem_comp_angle.value_angle_esd
HCN H1 C1 N1 180.000 3.000
data_comp_EOH
loop_
_chem_comp_atom.comp_id
_chem_comp_atom.atom_id
_chem_comp_atom.type_symbol
_chem_comp_atom.type_energy
EOH C1 C CH2
EOH C2 C CH3
EOH O1 O OH1
EOH HO1 H HOH1
loop_
_chem_comp_bond.comp_id
_chem_comp_bond.atom_id_1
_chem_comp_bond.atom_id_2
_chem_comp_bond.type
_chem_comp_bond.value_dist
_chem_comp_bond.value_dist_esd
EOH C1 C2 single 1.513 0.020
EOH C1 O1 single 1.426 0.020
EOH O1 HO1 single 0.840 0.020
loop_
_chem_comp_angle.comp_id
_chem_comp_angle.atom_id_1
_chem_comp_angle.atom_id_2
_chem_comp_angle.atom_id_3
_chem_comp_angle.value_angle
_chem_comp_angle.value_angle_esd
EOH C2 C1 O1  109.500 3.000
EOH C1 O1 HO1 109.000 3.000
loop_
_chem_comp_tor.comp_id
_chem_comp_tor.id
_chem_comp_tor.atom_id_1
_chem_comp_tor.atom_id_2
_chem_comp_tor.atom_id_3
_chem_comp_tor.atom_id_4
_chem_comp_tor.value_angle
_chem_comp_tor.value_angle_esd
_chem_comp_tor.period
EOH hh1 HO1 O1 C1 C2 180.000 10.000 3
data_comp_MIM
loop_
_chem_comp_atom.comp_id
_chem_comp_atom.atom_id
_chem_comp_atom.type_symbol
_chem_comp_atom.type_energy
MIM C1 C C1
MIM N1 N N
MIM HC1 H H
MIM HN1 H H
loop_
_chem_comp_bond.comp_id
_chem_comp_bond.atom_id_1
_chem_comp_bond.atom_id_2
_chem_comp_bond.type
_chem_comp_bond.value_dist
_chem_comp_bond.value_dist_esd
MIM C1 N1  double 1.270 0.020
MIM C1 HC1 single 0.930 0.020
MIM N1 HN1 single 0.860 0.020
loop_
_chem_comp_angle.comp_id
_chem_comp_angle.atom_id_1
_chem_comp_angle.atom_id_2
_chem_comp_angle.atom_id_3
_chem_comp_angle.value_angle
_chem_comp_angle.value_angle_esd
MIM N1 C1 HC1 120.000 3.000
MIM C1 N1 HN1 120.000 3.000
loop_
_chem_comp_plane_atom.comp_id
_chem_comp_plane_atom.plane_id
_chem_comp_plane_atom.atom_id
_chem_comp_plane_atom.dist_esd
MIM plan-1 C1  0.020
MIM plan-1 N1  0.020
MIM plan-1 HC1 0.020
MIM plan-1 HN1 0.020
data_comp_CH4
loop_
_chem_comp_atom.comp_id
_chem_comp_atom.atom_id
_chem_comp_atom.type_symbol
_chem_comp_atom.type_energy
CH4 C  C CH4
CH4 H1 H H
CH4 H2 H H
CH4 H3 H H
CH4 H4 H H
loop_
_chem_comp_bond.comp_id
_chem_comp_bond.atom_id_1
_chem_comp_bond.atom_id_2
_chem_comp_bond.type
_chem_comp_bond.value_dist
_chem_comp_bond.value_dist_esd
CH4 C H1 single 1.090 0.020
CH4 C H2 single 1.090 0.020
CH4 C H3 single 1.090 0.020
CH4 C H4 single 1.090 0.020
loop_
_chem_comp_angle.comp_id
_chem_comp_angle.atom_id_1
_chem_comp_angle.atom_id_2
_chem_comp_angle.atom_id_3
_chem_comp_angle.value_angle
_chem_comp_angle.value_angle_esd
CH4 H1 C H2 109.471 3.000
CH4 H1 C H3 109.471 3.000
CH4 H1 C H4 109.471 3.000
CH4 H2 C H3 109.471 3.000
CH4 H2 C H4 109.471 3.000
CH4 H3 C H4 109.471 3.000
data_comp_XH5
loop_
_chem_comp_atom.comp_id
_chem_comp_atom.atom_id
_chem_comp_atom.type_symbol
_chem_comp_atom.type_energy
XH5 P1 P P
XH5 H1 H H
XH5 H2 H H
XH5 H3 H H
XH5 H4 H H
XH5 H5 H H
loop_
_chem_comp_bond.comp_id
_chem_comp_bond.atom_id_1
_chem_comp_bond.atom_id_2
_chem_comp_bond.type
_chem_comp_bond.value_dist
_chem_comp_bond.value_dist_esd
XH5 P1 H1 single 1.420 0.020
XH5 P1 H2 single 1.420 0.020
XH5 P1 H3 single 1.420 0.020
XH5 P1 H4 single 1.420 0.020
XH5 P1 H5 single 1.420 0.020
"""


@pytest.fixture
def molecule_monlib():
    """Bundled library plus a few small molecules."""
    return MonomerLibrary.bundled().add(read_monomer_cif_string(SMALL_MOLECULES_CIF))


def _molecule(name, atoms):
    """Structure with one residue in chain M; atoms maps name to (element, position)."""
    res = Residue(name=name, seqid=SeqId(1), subchain="M")
    for atom_name, (element, pos) in atoms.items():
        res.add_atom(Atom(name=atom_name, element=element,
                          pos=np.array(pos, dtype=np.float64)))
    return make_structure({"M": [res]})


def _angle(a1, a2, a3):
    return math.degrees(calc_angle(a1.pos, a2.pos, a3.pos))


def _residues(st):
    return list(st.models[0].residues())


class TestNoHeavyNeighbours:
    """Hydrogens on atoms without heavy neighbours."""

    def test_ammonia(self, monlib, ammonia):
        topo = prepare_topology(ammonia, monlib, h_change=HydrogenChange.READD)
        res = _residues(ammonia)[0]
        assert [a.name for a in res.atoms] == ["N", "HN1", "HN2", "HN3"]
        n, h1, h2, h3 = res.atoms
        theta = math.radians(109.5)
        assert np.allclose(h1.pos, [1.89, 2.0, 3.0])
        assert np.allclose(h2.pos, [1.0 + 0.89 * math.cos(theta),
                                    2.0 + 0.89 * math.sin(theta), 3.0])
        assert np.allclose(h3.pos, [h2.pos[0], 4.0 - h2.pos[1], h2.pos[2]])
        for h in (h1, h2, h3):
            assert calc_distance(n.pos, h.pos) == pytest.approx(0.89)
            assert h.occ == 0.0
        assert _angle(h1, n, h2) == pytest.approx(109.5)
        assert topo.warnings == []

    def test_water(self, monlib, water):
        prepare_topology(water, monlib, h_change="readd")
        o, h1, h2 = _residues(water)[0].atoms
        assert (h1.name, h2.name) == ("H1", "H2")
        assert np.allclose(h1.pos, [5.98, 5.0, 5.0])
        assert calc_distance(o.pos, h2.pos) == pytest.approx(0.98)
        assert _angle(h1, o, h2) == pytest.approx(107.0)
        assert h1.occ == 0.0 and h2.occ == 0.0

    def test_water_skipped(self, monlib, water):
        prepare_topology(water, monlib, h_change=HydrogenChange.READD_BUT_WATER)
        assert [a.name for a in _residues(water)[0].atoms] == ["O"]

    def test_methane(self, molecule_monlib):
        st = _molecule("CH4", {"C": ("C", [0.0, 0.0, 0.0])})
        topo = prepare_topology(st, molecule_monlib, h_change="readd")
        c, *hs = _residues(st)[0].atoms
        assert [h.name for h in hs] == ["H1", "H2", "H3", "H4"]
        for i, h in enumerate(hs):
            assert calc_distance(c.pos, h.pos) == pytest.approx(1.09)
            assert h.occ == 0.0
            for other in hs[i + 1:]:
                assert _angle(h, c, other) == pytest.approx(109.471, abs=0.01)
        assert topo.warnings == []

    def test_too_many_hydrogens(self, molecule_monlib):
        st = _molecule("XH5", {"P1": ("P", [0.0, 0.0, 0.0])})
        topo = prepare_topology(st, molecule_monlib, h_change="readd")
        assert topo.warnings == [
            "Placing of hydrogen bonded to M/XH5 1/P1 failed:\n"
            "  5 hydrogens bonded to P1 and no heavy atoms",
        ]
        hs = _residues(st)[0].atoms[1:]
        assert len(hs) == 5
        assert all(h.occ == 0.0 for h in hs)
        assert not any(h.has_position for h in hs)


class TestOneHeavyNeighbour:
    """Hydrogens on atoms with a single heavy neighbour."""

    def test_collinear(self, molecule_monlib):
        st = _molecule("HCN", {"C1": ("C", [0.0, 0.0, 0.0]),
                               "N1": ("N", [-1.156, 0.0, 0.0])})
        topo = prepare_topology(st, molecule_monlib, h_change="readd")
        h1 = _residues(st)[0].get_atom("H1")
        assert np.allclose(h1.pos, [1.066, 0.0, 0.0])
        assert h1.occ == 1.0
        assert topo.warnings == []

    def test_reference_from_torsion(self, molecule_monlib):
        theta = math.radians(109.5)
        st = _molecule("EOH", {
            "C1": ("C", [0.0, 0.0, 0.0]),
            "C2": ("C", [1.513, 0.0, 0.0]),
            "O1": ("O", [1.426 * math.cos(theta), 1.426 * math.sin(theta), 0.0]),
        })
        topo = prepare_topology(st, molecule_monlib, h_change="readd")
        res = _residues(st)[0]
        c1, c2, o1, ho1 = (res.get_atom(name) for name in ("C1", "C2", "O1", "HO1"))
        assert calc_distance(o1.pos, ho1.pos) == pytest.approx(0.84)
        assert _angle(c1, o1, ho1) == pytest.approx(109.0)
        torsion = calc_torsion(c2.pos, c1.pos, o1.pos, ho1.pos)
        assert abs(torsion) == pytest.approx(180.0, abs=1e-3)
        # the torsion fixes the position
        assert ho1.occ == 1.0
        assert topo.warnings == []

    def test_plane_atom_without_position_is_not_a_reference(self, molecule_monlib):
        st = _molecule("MIM", {"C1": ("C", [1.0, 1.0, 0.0]),
                               "N1": ("N", [2.27, 1.0, 0.0])})
        topo = prepare_topology(st, molecule_monlib, h_change="readd")
        res = _residues(st)[0]
        c1, n1, hc1, hn1 = (res.get_atom(name) for name in ("C1", "N1", "HC1", "HN1"))
        # HN1 is not placed yet when HC1 is
        assert hc1.has_position
        assert hc1.occ == 0.0
        assert _angle(n1, c1, hc1) == pytest.approx(120.0)
        assert hn1.has_position
        assert hn1.occ == 1.0
        assert _angle(c1, n1, hn1) == pytest.approx(120.0)
        assert calc_torsion(hc1.pos, c1.pos, n1.pos, hn1.pos) == pytest.approx(0.0, abs=1e-3)
        assert topo.warnings == []


class TestChirality:
    """A hydrogen on a chiral centre with two heavy neighbours."""

    @pytest.mark.parametrize("sign", ["positiv", "negativ"])
    def test_sign_is_respected(self, ligand_monlib, chiral_ligand, sign):
        topo = prepare_topology(chiral_ligand, ligand_monlib(sign), h_change="readd")
        res = _residues(chiral_ligand)[0]
        c1, c2, n3, h1 = (res.get_atom(name) for name in ("C1", "C2", "N3", "H1"))
        assert h1.has_position
        assert h1.occ == 1.0
        volume = calc_chiral_volume(c1.pos, c2.pos, n3.pos, h1.pos)
        assert (volume > 0) == (sign == "positiv")
        assert calc_distance(c1.pos, h1.pos) == pytest.approx(0.98)
        assert _angle(c2, c1, h1) == pytest.approx(109.5)
        assert _angle(n3, c1, h1) == pytest.approx(109.5)
        assert topo.warnings == []

    def test_both_signs(self, ligand_monlib, chiral_ligand):
        prepare_topology(chiral_ligand, ligand_monlib("both"), h_change="readd")
        h1 = _residues(chiral_ligand)[0].get_atom("H1")
        assert h1.has_position
        assert h1.occ == 0.0

    def test_unsatisfiable_angles(self, chiral_ligand):
        text = (CHIRAL_LIGAND_CIF.format(sign="positiv")
                .replace("LIG C2 C1 H1 109.500", "LIG C2 C1 H1 50.000")
                .replace("LIG N3 C1 H1 109.500", "LIG N3 C1 H1 50.000"))
        monlib = MonomerLibrary.bundled().add(read_monomer_cif_string(text))
        topo = prepare_topology(chiral_ligand, monlib, h_change="readd")
        h1 = _residues(chiral_ligand)[0].get_atom("H1")
        assert not h1.has_position
        assert h1.occ == 0.0
        assert topo.warnings == [
            "Placing of hydrogen bonded to L/LIG 1/C1 failed:\n"
            "  Angle restraints of H1 bonded to C1 cannot be satisfied.",
        ]


class TestDipeptide:
    """Hydrogens of a small peptide re-added and placed."""

    def test_atoms_added(self, monlib, dipeptide):
        prepare_topology(dipeptide, monlib, h_change=HydrogenChange.READD)
        ala, gly = _residues(dipeptide)
        assert [a.name for a in ala.atoms] == [
            "N", "H", "CA", "HA", "C", "O", "CB", "HB1", "HB2", "HB3"]
        assert [a.name for a in gly.atoms] == ["N", "H", "CA", "HA2", "HA3", "C", "O"]
        serials = [a.serial for a in dipeptide.models[0].all_atoms()]
        assert serials == list(range(1, 18))

    def test_failures_are_reported(self, monlib, dipeptide):
        topo = prepare_topology(dipeptide, monlib, h_change=HydrogenChange.READD)
        assert topo.warnings == [
            "Placing of hydrogen bonded to A/ALA 1/CA failed:\n"
            "  not implemented yet: 1 hydrogens and 3 heavy atoms bonded to CA",
            "Placing of hydrogen bonded to A/ALA 1/CB failed:\n"
            "  not implemented yet: 3 hydrogens and one heavy atom bonded to CB",
        ]
        ala = _residues(dipeptide)[0]
        ha = ala.get_atom("HA")
        assert not ha.has_position
        assert ha.occ == 0.0
        for name in ("HB1", "HB2", "HB3"):
            assert ala.get_atom(name).occ == 0.0

    def test_place_hydrogens_raises(self, monlib, dipeptide):
        topo = prepare_topology(dipeptide, monlib, h_change=HydrogenChange.READD)
        ca = _residues(dipeptide)[0].get_atom("CA")
        with pytest.raises(HydrogenPlacementError, match="3 heavy atoms"):
            place_hydrogens(ca, topo)

    def test_amide_hydrogen_in_peptide_plane(self, monlib, dipeptide):
        prepare_topology(dipeptide, monlib, h_change=HydrogenChange.READD)
        ala, gly = _residues(dipeptide)
        c1 = ala.get_atom("C")
        n, h, ca = (gly.get_atom(name) for name in ("N", "H", "CA"))
        assert calc_distance(n.pos, h.pos) == pytest.approx(0.86)
        assert _angle(h, n, c1) == pytest.approx(124.3, abs=1e-3)
        assert _angle(h, n, ca) == pytest.approx(114.0, abs=1e-3)
        assert h.occ == 1.0

    def test_terminal_amine_hydrogen(self, monlib, dipeptide):
        prepare_topology(dipeptide, monlib, h_change=HydrogenChange.READD)
        ala = _residues(dipeptide)[0]
        n, h, ca = (ala.get_atom(name) for name in ("N", "H", "CA"))
        assert calc_distance(n.pos, h.pos) == pytest.approx(0.86)
        assert _angle(h, n, ca) == pytest.approx(114.0)
        # rotation around N-CA is arbitrary
        assert h.occ == 0.0

    def test_methylene_hydrogens(self, monlib, dipeptide):
        prepare_topology(dipeptide, monlib, h_change=HydrogenChange.READD)
        gly = _residues(dipeptide)[1]
        n, ca, c, ha2, ha3 = (gly.get_atom(name) for name in ("N", "CA", "C", "HA2", "HA3"))
        for h in (ha2, ha3):
            assert calc_distance(ca.pos, h.pos) == pytest.approx(0.97)
            assert _angle(n, ca, h) == pytest.approx(109.5)
            assert _angle(c, ca, h) == pytest.approx(109.5)
            assert h.occ == 1.0
        assert calc_distance(ha2.pos, ha3.pos) > 1.0

    def test_placed_bonds_match_restraints(self, monlib, dipeptide):
        topo = prepare_topology(dipeptide, monlib, h_change=HydrogenChange.READD)
        checked = 0
        for bond in topo.bonds:
            if any(a.is_hydrogen for a in bond.atoms) and all(
                    a.has_position for a in bond.atoms):
                assert bond.calculate() == pytest.approx(bond.restr.value)
                checked += 1
        # H and HB1 of ALA, H, HA2 and HA3 of GLY
        assert checked == 5

    def test_placement_is_repeatable(self, monlib, dipeptide):
        topo = prepare_topology(dipeptide, monlib, h_change=HydrogenChange.READD)
        atoms = [a for a in dipeptide.models[0].all_atoms() if a.is_hydrogen]
        before = np.array([a.pos for a in atoms])
        assert place_hydrogens_on_all_atoms(topo) == 2
        after = np.array([a.pos for a in atoms])
        assert np.allclose(before, after, equal_nan=True)

    def test_readd_replaces_existing_hydrogens(self, monlib, dipeptide):
        gly = _residues(dipeptide)[1]
        gly.add_atom(Atom(name="H", element="H", pos=np.array([9.0, 9.0, 9.0])))
        gly.add_atom(Atom(name="HXT", element="H", pos=np.array([8.0, 8.0, 8.0])))
        prepare_topology(dipeptide, monlib, h_change=HydrogenChange.READD)
        assert gly.get_atom("HXT") is None
        assert calc_distance(gly.get_atom("H").pos, gly.get_atom("N").pos) == \
            pytest.approx(0.86)


class TestRemoval:
    def test_remove_hydrogens(self):
        res = Residue(name="HOH")
        res.add_atom(Atom(name="O", element="O"))
        res.add_atom(Atom(name="H1", element="H"))
        res.add_atom(Atom(name="D2", element="D"))
        remove_hydrogens(res)
        assert [a.name for a in res.atoms] == ["O"]

    def test_remove_option(self, monlib, dipeptide):
        prepare_topology(dipeptide, monlib, h_change=HydrogenChange.READD)
        topo = prepare_topology(dipeptide, monlib, h_change=HydrogenChange.REMOVE)
        assert not any(a.is_hydrogen for a in dipeptide.models[0].all_atoms())
        assert len(topo.bonds) == 8
        assert topo.warnings == []

    def test_no_change(self, monlib, dipeptide):
        prepare_topology(dipeptide, monlib, h_change=HydrogenChange.READD)
        natoms = dipeptide.models[0].natoms
        topo = prepare_topology(dipeptide, monlib)
        assert dipeptide.models[0].natoms == natoms
        assert len(topo.bonds) > 8

    def test_unknown_residue_keeps_hydrogens_on_readd(self, monlib):
        res = Residue(name="XYZ", seqid=SeqId(1), subchain="X")
        res.add_atom(Atom(name="C1", element="C", pos=np.zeros(3)))
        res.add_atom(Atom(name="H1", element="H", pos=np.array([1.0, 0.0, 0.0])))
        st = make_structure({"X": [res]})
        prepare_topology(st, monlib, h_change=HydrogenChange.READD)
        assert [a.name for a in res.atoms] == ["C1", "H1"]
        prepare_topology(st, monlib, h_change=HydrogenChange.REMOVE)
        assert [a.name for a in res.atoms] == ["C1"]

    def test_no_hydrogens_on_auto_linked_atom(self, monlib):
        ala = make_residue("ALA", 1, ALA_COORDS)
        nh3 = Residue(name="NH3", seqid=SeqId(1), subchain="B")
        nh3.add_atom(Atom(name="N", element="N",
                          pos=ALA_COORDS["C"] + np.array([0.0, 0.0, -1.45])))
        st = make_structure({"A": [ala], "B": [nh3]})
        st.connections.append(Connection(
            name="covale1",
            partner1=AtomAddress("A", SeqId(1), "ALA", "C"),
            partner2=AtomAddress("B", SeqId(1), "NH3", "N"),
        ))
        prepare_topology(st, monlib, h_change=HydrogenChange.READD)
        assert [a.name for a in nh3.atoms] == ["N"]
        assert ala.get_atom("HA") is not None
