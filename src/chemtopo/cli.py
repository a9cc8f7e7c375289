"""
Command-line interface for chemtopo.

Provides the `chemtopo` command for preparing restraint topologies and
adding riding hydrogens.
"""

import sys
from pathlib import Path

import click
import numpy as np

from chemtopo import __version__
from chemtopo.topology.topo import restraint_deviations


@click.command()
@click.argument("pdb_file", type=click.Path(exists=True), required=False)
@click.option(
    "-l",
    "--monlib",
    "monlib_files",
    type=click.Path(exists=True),
    multiple=True,
    help="Monomer library file (repeatable); the bundled library if not given",
)
@click.option(
    "-H",
    "--hydrogens",
    type=click.Choice(["none", "remove", "readd", "readd-but-water"]),
    default="none",
    show_default=True,
    help="What to do with hydrogens",
)
@click.option("--reorder", is_flag=True, help="Sort atoms in dictionary order")
@click.option(
    "--ignore-unknown-links",
    is_flag=True,
    help="Don't make up bond restraints for links missing from the library",
)
@click.option("-m", "--model", "model_index", type=int, default=0, help="Model index")
@click.option("-O", "--output", type=click.Path(), help="Output file path")
@click.option("-v", "--verbose", is_flag=True, help="Verbose output")
@click.option("--version", is_flag=True, help="Show version and exit")
def main(
    pdb_file,
    monlib_files,
    hydrogens,
    reorder,
    ignore_unknown_links,
    model_index,
    output,
    verbose,
    version,
):
    """
    chemtopo: restraint topology and riding hydrogens

    Builds bond, angle, torsion, chirality and plane restraints for a
    model from a monomer library, and adds or removes hydrogens.

    Example usage:

        chemtopo -H readd model.pdb -O model_h.pdb

        chemtopo -l mon_lib_list.cif -l LIG.cif -v model.pdb
    """
    if version:
        click.echo(f"chemtopo version {__version__}")
        return
    if pdb_file is None:
        click.echo("Error: missing argument PDB_FILE", err=True)
        sys.exit(2)

    # Determine output filename
    if output is None and hydrogens != "none":
        input_path = Path(pdb_file)
        output = str(input_path.stem) + ".h.pdb"

    if verbose:
        click.echo(f"chemtopo v{__version__}")
        click.echo(f"Input: {pdb_file}")
        if output:
            click.echo(f"Output: {output}")
        click.echo()

    try:
        from chemtopo import MonomerLibrary, TopologyBuilder

        if monlib_files:
            monlib = MonomerLibrary.from_files(monlib_files)
        else:
            monlib = MonomerLibrary.bundled()

        builder = TopologyBuilder(
            model_index=model_index,
            h_change=hydrogens,
            reorder=reorder,
            ignore_unknown_links=ignore_unknown_links,
            verbose=verbose,
        )
        topo = builder.prepare_file(pdb_file, monlib, output)

        # verbose mode has printed them already
        if not verbose:
            for warning in topo.warnings:
                click.echo(f"WARNING: {warning}", err=True)

        if verbose:
            counts = topo.count()
            click.echo()
            click.echo("Topology complete!")
            for kind, n in counts.items():
                click.echo(f"  {kind}: {n}")
            devs = restraint_deviations(topo)
            if len(devs):
                rms = float(np.sqrt(np.mean(devs ** 2)))
                click.echo(f"  Bond RMSD: {rms:.3f} A")
            click.echo(f"  Warnings: {len(topo.warnings)}")
            if output:
                click.echo(f"  Output: {output}")

    except FileNotFoundError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        if verbose:
            import traceback

            traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main()
