"""
Monomer library: the store of restraint templates used by the topology.

Holds chemical components, links and modifications read from monomer
dictionary files, and answers the queries the assembler needs: which
link template fits a bond between two residues, how a link side maps
onto a residue (possibly through aliasing), and what bond length to
assume when nothing in the dictionary fits.
"""

from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple, Union

from chemtopo.core.chemcomp import Aliasing, ChemComp, ChemLink, ChemMod, LinkSide
from chemtopo.core.constants import LINK_TORSION_TOL, covalent_radius
from chemtopo.core.geometry import calc_chiral_volume, calc_torsion
from chemtopo.core.restraints import AtomId, Bond, ChiralityType, Restraints
from chemtopo.core.structures import Atom, Residue
from chemtopo.io.monlib_reader import MonomerData, read_monomer_cif


LinkMatch = Tuple[Optional[ChemLink], bool, Optional[Aliasing], Optional[Aliasing]]


def atom_matches_with_alias(link_atom: str, atom_name: str,
                            aliasing: Optional[Aliasing]) -> bool:
    """Check if an atom name in a link template refers to atom_name."""
    if aliasing is not None:
        real = aliasing.name_from_alias(link_atom)
        if real is not None:
            link_atom = real
    return link_atom == atom_name


def _angle_diff(a: float, b: float) -> float:
    """Absolute difference of two angles in degrees, in [0, 180]."""
    d = abs(a - b) % 360.0
    return 360.0 - d if d > 180.0 else d


class MonomerLibrary:
    """
    In-memory monomer library.

    Example usage:
        >>> monlib = MonomerLibrary.bundled()
        >>> monlib.find_component("ALA").group
        <Group.PEPTIDE: 'peptide'>

        >>> monlib = MonomerLibrary.from_files(["mon_lib_list.cif", "LIG.cif"])
    """

    def __init__(
        self,
        monomers: Optional[Dict[str, ChemComp]] = None,
        links: Optional[Dict[str, ChemLink]] = None,
        modifications: Optional[Dict[str, ChemMod]] = None,
    ):
        self.monomers: Dict[str, ChemComp] = dict(monomers or {})
        self.links: Dict[str, ChemLink] = dict(links or {})
        self.modifications: Dict[str, ChemMod] = dict(modifications or {})

    @classmethod
    def from_files(cls, paths: Iterable[Union[str, Path]]) -> "MonomerLibrary":
        """Create a library from dictionary files; later files override earlier ones."""
        monlib = cls()
        for path in paths:
            monlib.read_file(path)
        return monlib

    @classmethod
    def bundled(cls) -> "MonomerLibrary":
        """Library with the small set of definitions shipped with the package."""
        from chemtopo.data.loader import load_bundled_monomers

        return cls().add(load_bundled_monomers())

    def read_file(self, path: Union[str, Path]) -> "MonomerLibrary":
        return self.add(read_monomer_cif(path))

    def add(self, data: MonomerData) -> "MonomerLibrary":
        self.monomers.update(data.components)
        self.links.update(data.links)
        self.modifications.update(data.mods)
        return self

    def __contains__(self, name: str) -> bool:
        return name in self.monomers

    def __repr__(self) -> str:
        return (f"MonomerLibrary({len(self.monomers)} monomers, "
                f"{len(self.links)} links, {len(self.modifications)} mods)")

    # --- lookups ---

    def find_component(self, name: str) -> Optional[ChemComp]:
        return self.monomers.get(name)

    def find_link(self, link_id: str) -> Optional[ChemLink]:
        if not link_id:
            return None
        return self.links.get(link_id)

    def find_modification(self, mod_id: str) -> Optional[ChemMod]:
        if not mod_id:
            return None
        return self.modifications.get(mod_id)

    def link_side_matches(self, side: LinkSide, resname: str) -> Tuple[bool, Optional[Aliasing]]:
        """
        Check if a link side can be applied to a residue.

        A side naming a component matches only that component. A side
        naming a group matches components of that group, or components
        that have an aliasing for that group (the aliasing is returned).

        Returns:
            Tuple of (matches, aliasing or None)
        """
        if side.comp:
            return side.comp == resname, None
        cc = self.monomers.get(resname)
        if cc is None:
            return False, None
        if side.matches_group(cc.group):
            return True, None
        for aliasing in cc.aliases:
            if side.matches_group(aliasing.group):
                return True, aliasing
        return False, None

    # --- link matching ---

    def match_link(
        self,
        res1: Residue,
        atom1: str,
        alt1: str,
        res2: Residue,
        atom2: str,
        alt2: str,
        min_bond_sq: float = 0.0,
    ) -> LinkMatch:
        """
        Find the link template that best describes a bond atom1-atom2.

        Only the first bond of each template is matched. Templates are
        tried in both directions; the returned flag tells if res1 plays
        the role of side 2. Aliasings are returned for res1 and res2
        respectively, whatever the direction.

        Args:
            res1, res2: Bonded residues
            atom1, atom2: Names of the bonded atoms
            alt1, alt2: Altlocs of the bonded atoms ("" for none)
            min_bond_sq: Skip templates with shorter ideal bonds

        Returns:
            Tuple of (link or None, inverted, aliasing1, aliasing2)
        """
        best: LinkMatch = (None, False, None, None)
        best_score = -1000
        for link in self.links.values():
            if not link.rt.bonds or link.is_auto:
                continue
            bond = link.rt.bonds[0]
            if bond.value * bond.value < min_bond_sq:
                continue
            ok1, alias1 = self.link_side_matches(link.side1, res1.name)
            ok2, alias2 = self.link_side_matches(link.side2, res2.name)
            if (ok1 and ok2
                    and atom_matches_with_alias(bond.id1.atom, atom1, alias1)
                    and atom_matches_with_alias(bond.id2.atom, atom2, alias2)):
                score = self.link_score(link, res1, res2, alt1, alt2, alias1, alias2)
                if score > best_score:
                    best_score = score
                    best = (link, False, alias1, alias2)
            ok2, alias2 = self.link_side_matches(link.side1, res2.name)
            ok1, alias1 = self.link_side_matches(link.side2, res1.name)
            if (ok1 and ok2
                    and atom_matches_with_alias(bond.id1.atom, atom2, alias2)
                    and atom_matches_with_alias(bond.id2.atom, atom1, alias1)):
                score = self.link_score(link, res2, res1, alt2, alt1, alias2, alias1)
                if score > best_score:
                    best_score = score
                    best = (link, True, alias1, alias2)
        return best

    def link_score(
        self,
        link: ChemLink,
        res1: Residue,
        res2: Residue,
        alt1: str,
        alt2: str,
        aliasing1: Optional[Aliasing] = None,
        aliasing2: Optional[Aliasing] = None,
    ) -> int:
        """
        Score how well a link fits two residues (higher is better).

        Specific sides score more than group sides. Each chirality with
        a definite sign that contradicts the model, and each fixed
        torsion (period 0) off by more than 15 degrees, costs 10.
        """
        score = link.side1.specificity() + link.side2.specificity()
        rt = _aliased_restraints(link.rt, aliasing1, aliasing2)

        def atoms_of(restr) -> Optional[List[Atom]]:
            atoms = [i.get_from(res1, res2, alt1, alt2) for i in restr.atom_ids()]
            if any(a is None or not a.has_position for a in atoms):
                return None
            return atoms

        for chir in rt.chirs:
            if chir.sign == ChiralityType.BOTH:
                continue
            atoms = atoms_of(chir)
            if atoms is not None:
                vol = calc_chiral_volume(*(a.pos for a in atoms))
                if chir.is_wrong(vol):
                    score -= 10
        for tor in rt.torsions:
            if tor.period != 0:
                continue
            atoms = atoms_of(tor)
            if atoms is not None:
                value = calc_torsion(*(a.pos for a in atoms))
                if _angle_diff(value, tor.value) > LINK_TORSION_TOL:
                    score -= 10
        return score

    # --- fallbacks for unknown links ---

    def ideal_distance(self, atom1: Atom, atom2: Atom) -> float:
        """Bond length estimated as the sum of covalent radii."""
        dist = covalent_radius(atom1.element) + covalent_radius(atom2.element)
        return round(dist, 3)

    def register_synthesized_link(self, link: ChemLink) -> str:
        """
        Store a link made up at runtime, renaming it if its id is taken.

        Returns:
            The id under which the link was stored
        """
        base = link.id
        n = 0
        while link.id in self.links:
            link.id = f"{base}{n}"
            n += 1
        self.links[link.id] = link
        return link.id

    def add_auto_link(
        self,
        resname1: str,
        atom1: str,
        resname2: str,
        atom2: str,
        ideal: float,
        esd: float,
    ) -> str:
        """Register a link that restrains only the length of one bond."""
        link_id = resname1 + resname2
        link = ChemLink(
            id=link_id,
            name="auto-" + link_id,
            side1=LinkSide(comp=resname1),
            side2=LinkSide(comp=resname2),
        )
        link.rt.bonds.append(Bond(AtomId(1, atom1), AtomId(2, atom2),
                                  value=ideal, esd=esd, type="unspec"))
        return self.register_synthesized_link(link)


def _aliased_restraints(rt: Restraints, aliasing1: Optional[Aliasing],
                        aliasing2: Optional[Aliasing]) -> Restraints:
    """Copy of link restraints with standard names replaced by real ones."""
    if aliasing1 is None and aliasing2 is None:
        return rt
    rt = rt.copy()
    for comp, aliasing in ((1, aliasing1), (2, aliasing2)):
        if aliasing is not None:
            for name, std in aliasing.related:
                rt.rename_atom(AtomId(comp, std), name)
    return rt


def read_monomer_library(
    directory: Union[str, Path],
    resnames: Iterable[str],
    verbose: bool = False,
) -> MonomerLibrary:
    """
    Read the definitions needed for given residue names from a CCP4
    monomer library directory.

    The directory is expected to contain list/mon_lib_list.cif (links
    and modifications) and one file per component, either as
    a/ALA.cif (CCP4 layout) or ALA.cif. Missing components are not an
    error; residues without a definition get ad-hoc restraints.

    Args:
        directory: Top directory of the library
        resnames: Residue names to read
        verbose: Report missing components

    Returns:
        MonomerLibrary
    """
    top = Path(directory)
    monlib = MonomerLibrary()
    list_path = top / "list" / "mon_lib_list.cif"
    if list_path.exists():
        monlib.read_file(list_path)
    elif (top / "mon_lib_list.cif").exists():
        monlib.read_file(top / "mon_lib_list.cif")
    for name in sorted(set(resnames)):
        for path in (top / name[:1].lower() / f"{name}.cif", top / f"{name}.cif"):
            if path.exists():
                monlib.read_file(path)
                break
        else:
            if verbose:
                print(f"WARNING: monomer {name} not found in {top}")
    return monlib
