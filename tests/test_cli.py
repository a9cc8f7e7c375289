"""Tests for the command-line interface."""

from pathlib import Path

import pytest
from click.testing import CliRunner

from chemtopo import __version__
from chemtopo.cli import main
from chemtopo.core.structures import assign_serial_numbers, setup_entities
from chemtopo.data.loader import get_data_path
from chemtopo.io import read_pdb_file, structure_to_pdb_string


def _write_model(path, st):
    setup_entities(st)
    assign_serial_numbers(st.models[0])
    Path(path).write_text(structure_to_pdb_string(st))
    return str(path)


@pytest.fixture
def runner():
    return CliRunner()


class TestCLI:
    """Test the chemtopo command."""

    def test_version(self, runner):
        result = runner.invoke(main, ["--version"])
        assert result.exit_code == 0
        assert f"chemtopo version {__version__}" in result.output

    def test_missing_input(self, runner):
        result = runner.invoke(main, [])
        assert result.exit_code == 2
        assert "missing argument PDB_FILE" in result.output

    def test_readd(self, runner, tmp_path, dipeptide):
        input_path = _write_model(tmp_path / "model.pdb", dipeptide)
        output_path = tmp_path / "out.pdb"
        result = runner.invoke(main, ["-H", "readd", input_path, "-O", str(output_path)])
        assert result.exit_code == 0
        assert "WARNING: Placing of hydrogen bonded to A/ALA 1/CA failed" in result.output

        st = read_pdb_file(output_path)
        gly = st.models[0].chains[0].residues[1]
        assert [a.name for a in gly.atoms] == ["N", "H", "CA", "HA2", "HA3", "C", "O"]

    def test_default_output_name(self, runner, tmp_path, water):
        with runner.isolated_filesystem(temp_dir=tmp_path):
            _write_model("water.pdb", water)
            result = runner.invoke(main, ["--hydrogens", "readd-but-water", "water.pdb"])
            assert result.exit_code == 0
            assert Path("water.h.pdb").exists()

    def test_no_output_without_hydrogen_change(self, runner, tmp_path, water):
        with runner.isolated_filesystem(temp_dir=tmp_path):
            _write_model("water.pdb", water)
            result = runner.invoke(main, ["water.pdb"])
            assert result.exit_code == 0
            assert not Path("water.h.pdb").exists()

    def test_verbose(self, runner, tmp_path, dipeptide):
        input_path = _write_model(tmp_path / "model.pdb", dipeptide)
        result = runner.invoke(main, ["-v", input_path])
        assert result.exit_code == 0
        assert "Topology complete!" in result.output
        assert "bonds: 8" in result.output
        assert "Bond RMSD: 0.0" in result.output

    def test_bad_model_index(self, runner, tmp_path, dipeptide):
        input_path = _write_model(tmp_path / "model.pdb", dipeptide)
        result = runner.invoke(main, ["-m", "5", input_path])
        assert result.exit_code == 1
        assert "Error: no such model index: 5" in result.output

    def test_monomer_files(self, runner, tmp_path, chiral_ligand, chiral_ligand_cif):
        input_path = _write_model(tmp_path / "lig.pdb", chiral_ligand)
        cif_path = tmp_path / "LIG.cif"
        cif_path.write_text(chiral_ligand_cif.format(sign="positiv"))
        output_path = tmp_path / "lig_h.pdb"
        result = runner.invoke(main, [
            "-l", str(get_data_path("mon_lib_list.cif")), "-l", str(cif_path),
            "-H", "readd", "-O", str(output_path), input_path,
        ])
        assert result.exit_code == 0
        atoms = read_pdb_file(output_path).models[0].chains[0].residues[0].atoms
        assert [a.name for a in atoms] == ["C1", "H1", "C2", "N3"]
