"""
PDB file parser using BioPython.

Coordinates, altlocs, occupancies and B-factors come from Bio.PDB;
records Bio.PDB does not keep (LINK, LINKR, SSBOND, CISPEP and atom
charges) are read from the fixed columns of the file.
"""

from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union
import numpy as np

from Bio.PDB import PDBParser

from chemtopo.core.constants import (
    AMINO_ACIDS,
    DNA_NUCLEOTIDES,
    RNA_NUCLEOTIDES,
    WATER_NAMES,
)
from chemtopo.core.structures import (
    Asu,
    Atom,
    AtomAddress,
    Chain,
    Connection,
    ConnectionType,
    Model,
    Residue,
    SeqId,
    Structure,
    setup_entities,
)


def read_pdb_file(filename: Union[str, Path]) -> Structure:
    """
    Read a PDB file into a Structure.

    All models and all alternative conformations are kept. Polymer
    residues of a chain form one subchain, waters another one and each
    ligand gets its own subchain. Entities are set up afterwards.

    Args:
        filename: Path to PDB file

    Returns:
        Structure with models, entities and connections
    """
    with open(filename) as f:
        lines = f.read().splitlines()
    parser = PDBParser(QUIET=True)
    bio_structure = parser.get_structure(Path(filename).stem, str(filename))
    return _convert_biopython_structure(bio_structure, lines)


def read_pdb_string(text: str, name: str = "") -> Structure:
    """Parse PDB-formatted text (e.g. an embedded test model)."""
    import io

    parser = PDBParser(QUIET=True)
    bio_structure = parser.get_structure(name or "model", io.StringIO(text))
    return _convert_biopython_structure(bio_structure, text.splitlines())


def _convert_biopython_structure(bio_structure, lines: List[str]) -> Structure:
    """
    Convert BioPython Structure to internal Structure class.

    Args:
        bio_structure: BioPython Structure object
        lines: Lines of the PDB file, for records BioPython skips

    Returns:
        Structure object
    """
    st = Structure(name=bio_structure.id)
    charges = _read_charges(lines)

    for bio_model in bio_structure:
        model = Model(name=str(bio_model.serial_num or bio_model.id + 1))
        for bio_chain in bio_model:
            chain = Chain(name=bio_chain.get_id())
            n_ligands = 0
            for bio_residue in bio_chain.get_unpacked_list():
                hetfield, num, icode = bio_residue.get_id()
                res_name = bio_residue.get_resname().strip()
                residue = Residue(name=res_name, seqid=SeqId(num, icode.strip()))

                # Subchains: polymer, ligands, waters
                if hetfield == "W" or res_name in WATER_NAMES:
                    residue.subchain = f"{chain.name}_w"
                elif hetfield == " " or _is_polymer_residue_name(res_name):
                    residue.subchain = chain.name
                else:
                    n_ligands += 1
                    residue.subchain = f"{chain.name}_{n_ligands}"

                for bio_atom in bio_residue.get_unpacked_list():
                    altloc = bio_atom.get_altloc().strip()
                    serial = bio_atom.get_serial_number()
                    atom = Atom(
                        name=bio_atom.get_name(),
                        element=bio_atom.element or bio_atom.get_name()[:1],
                        pos=np.array(bio_atom.get_coord(), dtype=np.float64),
                        altloc=altloc,
                        occ=float(bio_atom.get_occupancy() or 0.0),
                        b_iso=float(bio_atom.get_bfactor() or 0.0),
                        charge=charges.get((bio_model.id, serial), 0),
                        serial=serial or 0,
                    )
                    residue.add_atom(atom)
                chain.add_residue(residue)
            _mark_microheterogeneity(chain)
            model.add_chain(chain)
        st.models.append(model)

    st.connections = _read_connections(lines)
    setup_entities(st)
    _read_cispeps(lines, st)
    return st


def _is_polymer_residue_name(name: str) -> bool:
    return name in AMINO_ACIDS or name in DNA_NUCLEOTIDES or name in RNA_NUCLEOTIDES


def _mark_microheterogeneity(chain: Chain) -> None:
    head = None
    for res in chain.residues:
        if head is not None and head.seqid == res.seqid and head.subchain == res.subchain:
            res.group_idx = head.group_idx + 1
            res.group_head = head.group_head or head
        head = res


def _read_charges(lines: List[str]) -> Dict[Tuple[int, int], int]:
    """Formal charges from columns 79-80, keyed by (model index, serial)."""
    charges = {}
    model_idx = 0
    seen_model = False
    for line in lines:
        record = line[:6]
        if record == "MODEL ":
            if seen_model:
                model_idx += 1
            seen_model = True
        elif record in ("ATOM  ", "HETATM") and len(line) >= 80:
            text = line[78:80].strip()
            if len(text) == 2 and text[0].isdigit() and text[1] in "+-":
                charge = int(text[0]) * (-1 if text[1] == "-" else 1)
                try:
                    serial = int(line[6:11])
                except ValueError:
                    continue
                charges[(model_idx, serial)] = charge
    return charges


def _seqid(num_text: str, icode: str) -> SeqId:
    return SeqId(int(num_text), icode.strip())


def _asu(sym1: str, sym2: str) -> Asu:
    sym1 = sym1.strip()
    sym2 = sym2.strip()
    if not sym1 or not sym2:
        return Asu.ANY
    return Asu.SAME if sym1 == sym2 else Asu.DIFFERENT


def _distance(text: str) -> Optional[float]:
    try:
        return float(text)
    except ValueError:
        return None


def _read_connections(lines: List[str]) -> List[Connection]:
    """
    Connections from SSBOND, LINK and LINKR records.

    LINKR (written by Refmac) carries the link id in columns 73-80 and
    no distance.
    """
    connections = []
    n_disulf = n_covale = 0
    for line in lines:
        record = line[:6]
        line = line.ljust(80)
        if record == "SSBOND":
            n_disulf += 1
            p1 = AtomAddress(line[15], _seqid(line[17:21], line[21]),
                             line[11:14].strip(), "SG")
            p2 = AtomAddress(line[29], _seqid(line[31:35], line[35]),
                             line[25:28].strip(), "SG")
            connections.append(Connection(
                name=f"disulf{n_disulf}",
                partner1=p1,
                partner2=p2,
                conn_type=ConnectionType.DISULF,
                asu=_asu(line[59:65], line[66:72]),
                reported_distance=_distance(line[73:78]),
            ))
        elif record in ("LINK  ", "LINKR "):
            n_covale += 1
            p1 = AtomAddress(line[21], _seqid(line[22:26], line[26]),
                             line[17:20].strip(), line[12:16].strip(),
                             line[16].strip())
            p2 = AtomAddress(line[51], _seqid(line[52:56], line[56]),
                             line[47:50].strip(), line[42:46].strip(),
                             line[46].strip())
            conn = Connection(name=f"covale{n_covale}", partner1=p1, partner2=p2)
            if record == "LINKR ":
                conn.link_id = line[72:80].strip()
            else:
                conn.asu = _asu(line[59:65], line[66:72])
                conn.reported_distance = _distance(line[73:78])
            connections.append(conn)
    return connections


def _read_cispeps(lines: List[str], st: Structure) -> None:
    """
    Set is_cis on the first residue of each CISPEP pair.

    Other residues keep is_cis = None; their omega is checked later.
    """
    for line in lines:
        if not line.startswith("CISPEP"):
            continue
        line = line.ljust(80)
        chain_name = line[15]
        seqid = _seqid(line[17:21], line[21])
        res_name = line[11:14].strip()
        model_num = line[43:46].strip()
        for model in st.models:
            if model_num not in ("", "0") and model.name != model_num:
                continue
            chain = model.find_chain(chain_name)
            if chain is None:
                continue
            res = chain.find_residue(seqid, res_name)
            if res is not None:
                res.is_cis = True
