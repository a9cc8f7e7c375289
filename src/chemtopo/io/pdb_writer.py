"""
PDB file writer.

Writes SSBOND/LINKR connection records, then ATOM/HETATM records with
altlocs, occupancies, B-factors, elements and charges.
"""

from pathlib import Path
from typing import List, Optional, Union

from chemtopo.core.structures import (
    Atom,
    Connection,
    ConnectionType,
    EntityType,
    Model,
    Residue,
    Structure,
)


def write_pdb(
    filename: Union[str, Path],
    structure: Structure,
    model_index: Optional[int] = None,
) -> None:
    """
    Write a Structure to PDB format.

    Args:
        filename: Output file path
        structure: Structure to write
        model_index: Write only this model; all models if None
    """
    with open(filename, "w") as f:
        f.write(structure_to_pdb_string(structure, model_index))


def structure_to_pdb_string(
    structure: Structure,
    model_index: Optional[int] = None,
) -> str:
    """
    Convert a Structure to a PDB format string.

    MODEL/ENDMDL records are written only if there is more than one
    model to write.

    Args:
        structure: Structure to convert
        model_index: Write only this model; all models if None

    Returns:
        PDB format string
    """
    if model_index is None:
        models = structure.models
    else:
        models = [structure.models[model_index]]

    lines = _connection_lines(structure.connections)
    for model in models:
        if len(models) > 1:
            lines.append(f"MODEL     {model.name:>4}")
        lines.extend(_model_lines(model))
        if len(models) > 1:
            lines.append("ENDMDL")
    lines.append("END")
    return "\n".join(lines) + "\n"


def _model_lines(model: Model) -> List[str]:
    lines = []
    for chain in model.chains:
        last = None
        for residue in chain.residues:
            for atom in residue.atoms:
                lines.append(_format_atom_line(atom, residue, chain.name))
            if residue.atoms:
                last = residue
        if last is not None and last.entity_type == EntityType.POLYMER:
            serial = (last.atoms[-1].serial or 0) + 1
            lines.append(f"TER   {serial:>5d}      {last.name:>3} {chain.name:1}"
                         f"{last.seqid.num:>4d}{last.seqid.icode or ' ':1}")
    return lines


def _connection_lines(connections: List[Connection]) -> List[str]:
    lines = []
    n_disulf = 0
    for conn in connections:
        p1, p2 = conn.partner1, conn.partner2
        if conn.conn_type == ConnectionType.DISULF:
            n_disulf += 1
            lines.append(
                f"SSBOND {n_disulf:>3d} {p1.res_name:>3} {p1.chain_name:1} "
                f"{p1.seqid.num:>4d}{p1.seqid.icode or ' ':1}   "
                f"{p2.res_name:>3} {p2.chain_name:1} "
                f"{p2.seqid.num:>4d}{p2.seqid.icode or ' ':1}"
            )
        elif conn.conn_type != ConnectionType.HYDROG:
            # LINKR keeps the link id
            record = "LINKR " if conn.link_id else "LINK  "
            line = (
                f"{record}      "
                f"{_atom_name_field(p1.atom_name, '')}{p1.altloc or ' ':1}"
                f"{p1.res_name:>3} {p1.chain_name:1}"
                f"{p1.seqid.num:>4d}{p1.seqid.icode or ' ':1}"
                f"               "
                f"{_atom_name_field(p2.atom_name, '')}{p2.altloc or ' ':1}"
                f"{p2.res_name:>3} {p2.chain_name:1}"
                f"{p2.seqid.num:>4d}{p2.seqid.icode or ' ':1}"
            )
            if conn.link_id:
                line = f"{line:<72}{conn.link_id}"
            lines.append(line)
    return lines


def _atom_name_field(name: str, element: str) -> str:
    """Atom name in columns 13-16, aligned the PDB way."""
    if len(name) < 4 and len(element) < 2:
        return f" {name:<3}"
    return f"{name:<4}"


def _format_charge(charge: int) -> str:
    if charge == 0:
        return "  "
    return f"{abs(charge)}{'+' if charge > 0 else '-'}"


def _format_atom_line(atom: Atom, residue: Residue, chain: str) -> str:
    """
    Format a single ATOM/HETATM line in strict PDB format.

    PDB format specification:
    COLUMNS        DATA TYPE       CONTENTS
    --------------------------------------------------------------------------------
     1 -  6        Record name     "ATOM  " or "HETATM"
     7 - 11        Integer         Atom serial number
    13 - 16        Atom            Atom name
    17             Character       Alternate location indicator
    18 - 20        Residue name    Residue name
    22             Character       Chain identifier
    23 - 26        Integer         Residue sequence number
    27             AChar           Code for insertion of residues
    31 - 38        Real(8.3)       X coordinate
    39 - 46        Real(8.3)       Y coordinate
    47 - 54        Real(8.3)       Z coordinate
    55 - 60        Real(6.2)       Occupancy
    61 - 66        Real(6.2)       Temperature factor
    77 - 78        LString(2)      Element symbol
    79 - 80        LString(2)      Charge on the atom
    """
    record = "ATOM  " if residue.entity_type == EntityType.POLYMER else "HETATM"
    x, y, z = atom.pos

    # fmt: off
    line = (
        f"{record}"                            # 1-6:   Record name
        f"{atom.serial % 100000:>5d} "         # 7-11:  Serial number + col 12 space
        f"{_atom_name_field(atom.name, atom.element)}"  # 13-16: Atom name
        f"{atom.altloc or ' ':1}"              # 17:    AltLoc
        f"{residue.name:>3} "                  # 18-20: ResName + col 21 space
        f"{chain:1}"                           # 22:    Chain ID
        f"{residue.seqid.num:>4d}"             # 23-26: Residue sequence number
        f"{residue.seqid.icode or ' ':1}"      # 27:    Insertion code
        f"   "                                 # 28-30: Blank
        f"{x:>8.3f}"                           # 31-38: X coordinate
        f"{y:>8.3f}"                           # 39-46: Y coordinate
        f"{z:>8.3f}"                           # 47-54: Z coordinate
        f"{atom.occ:>6.2f}"                    # 55-60: Occupancy
        f"{atom.b_iso:>6.2f}"                  # 61-66: Temperature factor
        f"          "                          # 67-76: Blank
        f"{atom.element:>2}"                   # 77-78: Element symbol
        f"{_format_charge(atom.charge)}"       # 79-80: Charge
    )
    # fmt: on

    return line
