"""
Core data structures for macromolecular models.

Atoms are owned by residues, residues by chains, chains by models and
models by a structure. Restraint instances keep direct references to
Atom objects, so atoms compare and hash by identity.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, List, NamedTuple, Optional
import numpy as np

from chemtopo.core.constants import (
    AMINO_ACIDS,
    DNA_NUCLEOTIDES,
    RNA_NUCLEOTIDES,
    WATER_NAMES,
    is_hydrogen_element,
    normalize_element,
)


class EntityType(Enum):
    UNKNOWN = "unknown"
    POLYMER = "polymer"
    NON_POLYMER = "non-polymer"
    WATER = "water"


class PolymerType(Enum):
    UNKNOWN = "unknown"
    PEPTIDE_L = "polypeptide(L)"
    PEPTIDE_D = "polypeptide(D)"
    DNA = "polydeoxyribonucleotide"
    RNA = "polyribonucleotide"
    DNA_RNA_HYBRID = "polydeoxyribonucleotide/polyribonucleotide hybrid"

    @property
    def is_polypeptide(self) -> bool:
        return self in (PolymerType.PEPTIDE_L, PolymerType.PEPTIDE_D)

    @property
    def is_polynucleotide(self) -> bool:
        return self in (PolymerType.DNA, PolymerType.RNA, PolymerType.DNA_RNA_HYBRID)


class ConnectionType(Enum):
    COVALE = "covale"
    DISULF = "disulf"
    METALC = "metalc"
    HYDROG = "hydrog"
    UNKNOWN = "unknown"


class Asu(Enum):
    """Whether a connection stays in the asymmetric unit or crosses to a symmetry mate."""

    ANY = "any"
    SAME = "same"
    DIFFERENT = "different"


class SeqId(NamedTuple):
    """Sequence number with insertion code."""

    num: int
    icode: str = ""

    def __str__(self) -> str:
        return f"{self.num}{self.icode.strip()}"


def is_same_conformer(altloc1: str, altloc2: str) -> bool:
    """Atoms without altloc belong to every conformer."""
    return not altloc1 or not altloc2 or altloc1 == altloc2


@dataclass(eq=False)
class Atom:
    """
    A single atom.

    An undetermined position is stored as NaN coordinates.
    """

    name: str
    element: str = "X"
    pos: np.ndarray = field(default_factory=lambda: np.full(3, np.nan))
    altloc: str = ""  # "" means no alternate conformer
    occ: float = 1.0
    b_iso: float = 20.0
    charge: int = 0
    serial: int = 0
    aniso: Optional[tuple] = None  # (u11, u22, u33, u12, u13, u23)

    def __post_init__(self):
        """Ensure pos is a float numpy array and the element is normalized."""
        if not isinstance(self.pos, np.ndarray) or self.pos.dtype != np.float64:
            self.pos = np.array(self.pos, dtype=np.float64)
        self.element = normalize_element(self.element)
        if self.altloc == " ":
            self.altloc = ""

    @property
    def is_hydrogen(self) -> bool:
        return is_hydrogen_element(self.element)

    @property
    def has_position(self) -> bool:
        return bool(np.isfinite(self.pos).all())

    def same_conformer(self, other: "Atom") -> bool:
        return is_same_conformer(self.altloc, other.altloc)

    def distance_to(self, other: "Atom") -> float:
        """Calculate distance to another atom."""
        return float(np.linalg.norm(self.pos - other.pos))

    def copy(self) -> "Atom":
        """Create a copy of this atom."""
        return Atom(
            name=self.name,
            element=self.element,
            pos=self.pos.copy(),
            altloc=self.altloc,
            occ=self.occ,
            b_iso=self.b_iso,
            charge=self.charge,
            serial=self.serial,
            aniso=self.aniso,
        )


@dataclass(eq=False)
class Residue:
    """
    A residue: an ordered list of atoms, possibly in several conformers.

    Microheterogeneity is represented by consecutive residues with the
    same seqid; group_idx counts them (0 = the first copy) and
    group_head points to the first copy.
    """

    name: str
    seqid: SeqId = SeqId(1)
    atoms: List[Atom] = field(default_factory=list)
    subchain: str = ""
    entity_type: EntityType = EntityType.UNKNOWN
    is_cis: Optional[bool] = None  # None if not known from the input
    group_idx: int = 0
    group_head: Optional["Residue"] = field(default=None, repr=False)

    def __post_init__(self):
        if not isinstance(self.seqid, SeqId):
            self.seqid = SeqId(int(self.seqid))

    @property
    def natoms(self) -> int:
        """Number of atoms in this residue."""
        return len(self.atoms)

    @property
    def is_water(self) -> bool:
        return self.name in WATER_NAMES

    def add_atom(self, atom: Atom) -> Atom:
        """Add an atom to this residue."""
        self.atoms.append(atom)
        return atom

    def find_atom(
        self,
        name: str,
        altloc: str = "*",
        element: Optional[str] = None,
        strict_altloc: bool = True,
    ) -> Optional[Atom]:
        """
        Get an atom by name and alternate location.

        Args:
            name: Atom name
            altloc: Altloc to match, "*" matches any
            element: Optional element that must also match
            strict_altloc: If False, atoms without altloc match any altloc

        Returns:
            Atom object or None if not found
        """
        for atom in self.atoms:
            if atom.name != name:
                continue
            if not (altloc == "*" or atom.altloc == altloc
                    or (not strict_altloc and not atom.altloc)):
                continue
            if element is not None and atom.element != normalize_element(element):
                continue
            return atom
        return None

    def get_atom(self, name: str) -> Optional[Atom]:
        """Get the first atom with the given name, in any conformer."""
        return self.find_atom(name, "*")

    def distinct_altlocs(self) -> str:
        """Altloc labels present in this residue, in order of appearance."""
        altlocs = ""
        for atom in self.atoms:
            if atom.altloc and atom.altloc not in altlocs:
                altlocs += atom.altloc
        return altlocs


@dataclass
class Chain:
    """A chain: residues possibly split into several subchains."""

    name: str
    residues: List[Residue] = field(default_factory=list)

    def add_residue(self, residue: Residue) -> Residue:
        """Add a residue to this chain."""
        self.residues.append(residue)
        return residue

    def subchains(self) -> List[List[Residue]]:
        """Runs of consecutive residues with the same subchain name."""
        spans = []
        for res in self.residues:
            if spans and spans[-1][0].subchain == res.subchain:
                spans[-1].append(res)
            else:
                spans.append([res])
        return spans

    def find_residue(self, seqid: SeqId, name: Optional[str] = None) -> Optional[Residue]:
        for res in self.residues:
            if res.seqid == seqid and (name is None or res.name == name):
                return res
        return None


class AtomAddress(NamedTuple):
    """Address of an atom within a model, as used by connection records."""

    chain_name: str
    seqid: SeqId
    res_name: str
    atom_name: str
    altloc: str = ""

    def __str__(self) -> str:
        alt = f".{self.altloc}" if self.altloc else ""
        return f"{self.chain_name}/{self.res_name} {self.seqid}/{self.atom_name}{alt}"


class CRA(NamedTuple):
    """Chain, residue and atom found for an AtomAddress."""

    chain: Optional[Chain]
    residue: Optional[Residue]
    atom: Optional[Atom]


@dataclass
class Model:
    """One model (e.g. one NMR model) of a structure."""

    name: str = "1"
    chains: List[Chain] = field(default_factory=list)

    def add_chain(self, chain: Chain) -> Chain:
        self.chains.append(chain)
        return chain

    def find_chain(self, name: str) -> Optional[Chain]:
        for chain in self.chains:
            if chain.name == name:
                return chain
        return None

    def find_cra(self, address: AtomAddress) -> CRA:
        """
        Find chain, residue and atom for an address.

        Residue name has to match; the altloc is matched non-strictly.
        With microheterogeneity the first residue containing the atom wins.
        """
        for chain in self.chains:
            if chain.name != address.chain_name:
                continue
            for res in chain.residues:
                if res.seqid != address.seqid or res.name != address.res_name:
                    continue
                atom = res.find_atom(address.atom_name, address.altloc or "*",
                                     strict_altloc=False)
                if atom is not None:
                    return CRA(chain, res, atom)
            return CRA(chain, None, None)
        return CRA(None, None, None)

    def residues(self) -> Iterator[Residue]:
        for chain in self.chains:
            yield from chain.residues

    def all_atoms(self) -> Iterator[Atom]:
        for res in self.residues():
            yield from res.atoms

    @property
    def natoms(self) -> int:
        return sum(res.natoms for res in self.residues())


@dataclass
class Entity:
    """A chemically distinct part of the structure (polymer, ligand, water)."""

    name: str
    entity_type: EntityType = EntityType.UNKNOWN
    polymer_type: PolymerType = PolymerType.UNKNOWN
    subchains: List[str] = field(default_factory=list)


@dataclass
class Connection:
    """An explicit connection (LINK, SSBOND or struct_conn record)."""

    name: str
    partner1: AtomAddress
    partner2: AtomAddress
    conn_type: ConnectionType = ConnectionType.COVALE
    link_id: str = ""  # restraint link id, "gap" for an explicit chain break
    asu: Asu = Asu.ANY
    reported_distance: Optional[float] = None


@dataclass
class Structure:
    """A macromolecular structure: models, entities and connections."""

    name: str = ""
    models: List[Model] = field(default_factory=list)
    entities: List[Entity] = field(default_factory=list)
    connections: List[Connection] = field(default_factory=list)

    def get_entity_of(self, subchain_name: str) -> Optional[Entity]:
        for ent in self.entities:
            if subchain_name in ent.subchains:
                return ent
        return None


def guess_polymer_type(residues: List[Residue]) -> PolymerType:
    """
    Guess the polymer type of a subchain from residue names and atoms.

    Args:
        residues: Residues of one subchain

    Returns:
        PolymerType, UNKNOWN for a single residue or no majority
    """
    if len(residues) < 2:
        return PolymerType.UNKNOWN
    n_aa = n_dna = n_rna = 0
    for res in residues:
        if res.name in AMINO_ACIDS or (
            res.get_atom("N") and res.get_atom("CA") and res.get_atom("C")
        ):
            n_aa += 1
        elif res.name in DNA_NUCLEOTIDES:
            n_dna += 1
        elif res.name in RNA_NUCLEOTIDES:
            n_rna += 1
        elif res.get_atom("P") and res.get_atom("O3'"):
            if res.get_atom("O2'"):
                n_rna += 1
            else:
                n_dna += 1
    half = len(residues) / 2
    if n_aa > half:
        return PolymerType.PEPTIDE_L
    if n_dna + n_rna > half:
        if n_dna and n_rna:
            return PolymerType.DNA_RNA_HYBRID
        return PolymerType.DNA if n_dna else PolymerType.RNA
    return PolymerType.UNKNOWN


def setup_entities(structure: Structure) -> None:
    """
    Create entities for subchains that have none.

    Each polymer subchain gets its own polymer entity; other subchains
    are grouped into water and non-polymer entities by residue name.
    """
    if not structure.models:
        return
    by_key = {}
    for ent in structure.entities:
        by_key.setdefault(ent.name, ent)
    for chain in structure.models[0].chains:
        for span in chain.subchains():
            sub_name = span[0].subchain
            if structure.get_entity_of(sub_name) is not None:
                continue
            polymer_type = guess_polymer_type(span)
            if polymer_type != PolymerType.UNKNOWN:
                key = f"polymer_{sub_name}"
                ent = Entity(key, EntityType.POLYMER, polymer_type)
            elif all(res.is_water for res in span):
                key = "water"
                ent = by_key.get(key) or Entity(key, EntityType.WATER)
            else:
                key = "ligand_" + span[0].name
                ent = by_key.get(key) or Entity(key, EntityType.NON_POLYMER)
            if key not in by_key:
                by_key[key] = ent
                structure.entities.append(ent)
            ent.subchains.append(sub_name)
            for res in span:
                res.entity_type = ent.entity_type


def assign_serial_numbers(model: Model) -> None:
    serial = 0
    for atom in model.all_atoms():
        serial += 1
        atom.serial = serial
