"""
Main chemtopo class: topology preparation with hydrogen handling.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from chemtopo.core.structures import Structure, assign_serial_numbers
from chemtopo.monlib import MonomerLibrary
from chemtopo.topology.assembler import finalize, initialize
from chemtopo.topology.hydrogens import (
    HydrogenChange,
    add_hydrogens_without_positions,
    place_hydrogens_on_all_atoms,
    remove_hydrogens,
)
from chemtopo.topology.topo import Link, ResInfo, Topology


@dataclass
class TopologyConfig:
    """Configuration for topology preparation."""

    model_index: int = 0
    h_change: HydrogenChange = HydrogenChange.NO_CHANGE
    reorder: bool = False
    ignore_unknown_links: bool = False

    # Behavior
    verbose: bool = False


class TopologyBuilder:
    """
    Prepares the restraint topology of a structure.

    Example usage:
        >>> builder = TopologyBuilder(h_change=HydrogenChange.READD)
        >>> topo = builder.prepare(structure, MonomerLibrary.bundled())
        >>> topo.warnings
        [...]

        >>> topo = TopologyBuilder(verbose=True).prepare_file("model.pdb", monlib,
        ...                                                   "with_h.pdb")
    """

    def __init__(
        self,
        model_index: int = 0,
        h_change: Union[HydrogenChange, str] = HydrogenChange.NO_CHANGE,
        reorder: bool = False,
        ignore_unknown_links: bool = False,
        verbose: bool = False,
        **kwargs,
    ):
        """
        Initialize the builder with configuration options.

        Args:
            model_index: Index of the model to use
            h_change: What to do with hydrogens (HydrogenChange or its value)
            reorder: Sort atoms in residues in the dictionary order
            ignore_unknown_links: Don't make up links missing from the library
            verbose: Print progress messages and warnings
        """
        if isinstance(h_change, str):
            h_change = HydrogenChange(h_change)
        self.config = TopologyConfig(
            model_index=model_index,
            h_change=h_change,
            reorder=reorder,
            ignore_unknown_links=ignore_unknown_links,
            verbose=verbose,
        )

    def prepare(self, structure: Structure, monlib: MonomerLibrary) -> Topology:
        """
        Build the topology of one model; add, remove or place hydrogens.

        The model is modified in place (hydrogens, atom order, serial
        numbers, occupancies of hydrogens that can't be placed uniquely).

        Args:
            structure: Input structure
            monlib: Monomer library (auto links may be added to it)

        Returns:
            Topology, with problems listed in topo.warnings

        Raises:
            ValueError: if the model index is out of range
        """
        cfg = self.config
        if not 0 <= cfg.model_index < len(structure.models):
            raise ValueError(f"no such model index: {cfg.model_index}")
        model = structure.models[cfg.model_index]
        topo = Topology(verbose=cfg.verbose)

        if cfg.verbose:
            print("Setting up links and modifications...")
        initialize(topo, structure, model, monlib, cfg.ignore_unknown_links)

        h_change = cfg.h_change
        for ci in topo.chain_infos:
            for ri in ci.res_infos:
                res = ri.res
                # don't re-add H's without a component description
                if h_change != HydrogenChange.NO_CHANGE and (
                    ri.orig_chemcomp is not None or h_change == HydrogenChange.REMOVE
                ):
                    remove_hydrogens(res)
                    if h_change == HydrogenChange.READD or (
                        h_change == HydrogenChange.READD_BUT_WATER and not res.is_water
                    ):
                        add_hydrogens_without_positions(ri)
                        if h_change == HydrogenChange.READD_BUT_WATER and res.name == "HIS":
                            # compatibility with Refmac
                            for atom in res.atoms:
                                if atom.name in ("HD1", "HE2"):
                                    atom.occ = 0.0
                _check_atom_names(topo, ci.chain.name, ri)
                if cfg.reorder and ri.orig_chemcomp is not None:
                    _reorder_atoms(ri)

        # for now no hydrogens on atoms with ad-hoc links
        if not cfg.ignore_unknown_links and h_change != HydrogenChange.NO_CHANGE:
            for link in topo.all_links():
                _remove_hydrogens_from_auto_link(topo, link, monlib)

        assign_serial_numbers(model)
        if cfg.verbose:
            print("Applying restraints...")
        finalize(topo, monlib)

        # hydrogens added above have no positions yet
        if h_change != HydrogenChange.NO_CHANGE:
            if cfg.verbose:
                print("Placing hydrogens...")
            place_hydrogens_on_all_atoms(topo)

        if cfg.verbose:
            print(topo)
        return topo

    def prepare_file(
        self,
        input_path: Union[str, Path],
        monlib: Optional[MonomerLibrary] = None,
        output_path: Optional[Union[str, Path]] = None,
    ) -> Topology:
        """
        Prepare the topology of a structure read from a PDB file.

        Args:
            input_path: Path to input PDB file
            monlib: Monomer library, the bundled one if None
            output_path: Optional path for output PDB file

        Returns:
            Topology of the structure
        """
        from chemtopo.io.pdb_parser import read_pdb_file
        from chemtopo.io.pdb_writer import write_pdb

        if self.config.verbose:
            print(f"Reading {input_path}...")
        structure = read_pdb_file(input_path)
        if monlib is None:
            monlib = MonomerLibrary.bundled()
        topo = self.prepare(structure, monlib)
        if output_path is not None:
            if self.config.verbose:
                print(f"Writing {output_path}...")
            write_pdb(output_path, structure, model_index=self.config.model_index)
        return topo


def _check_atom_names(topo: Topology, chain_name: str, ri: ResInfo) -> None:
    for atom in ri.res.atoms:
        cc = ri.get_final_chemcomp(atom.altloc)
        if not cc.has_atom(atom.name):
            alt = f".{atom.altloc}" if atom.altloc else ""
            msg = (f"definition not found for {chain_name}/{ri.res.name} "
                   f"{ri.res.seqid}/{atom.name}{alt}")
            if ri.orig_chemcomp is not None and ri.orig_chemcomp.has_atom(atom.name):
                msg += " (linkage should remove this atom)"
            topo.err(msg)


def _reorder_atoms(ri: ResInfo) -> None:
    """Sort atoms in the dictionary order; atoms added by modifications go last."""
    cc = ri.orig_chemcomp
    ri.res.atoms.sort(key=lambda a: (cc.atom_index(a.name), a.altloc))


def _remove_hydrogens_from_auto_link(topo: Topology, link: Link,
                                     monlib: MonomerLibrary) -> None:
    chem_link = monlib.find_link(link.link_id)
    if chem_link is None or not chem_link.is_auto:
        return
    bond = chem_link.rt.bonds[0]
    for res, name, alt in ((link.res1, bond.id1.atom, link.alt1),
                           (link.res2, bond.id2.atom, link.alt2)):
        ri = topo.find_resinfo(res)
        if ri is None:
            continue
        rt = ri.get_final_chemcomp(alt).rt
        kept = []
        for atom in ri.res.atoms:
            if atom.is_hydrogen and (not alt or not atom.altloc or atom.altloc == alt):
                heavy = rt.first_bonded_atom(atom.name)
                if heavy is not None and heavy.atom == name:
                    continue
            kept.append(atom)
        ri.res.atoms = kept


def prepare_topology(
    structure: Structure,
    monlib: MonomerLibrary,
    **kwargs,
) -> Topology:
    """
    Convenience function for topology preparation.

    Args:
        structure: Input structure (modified in place)
        monlib: Monomer library
        **kwargs: Options passed to TopologyBuilder

    Returns:
        Topology
    """
    builder = TopologyBuilder(**kwargs)
    return builder.prepare(structure, monlib)
