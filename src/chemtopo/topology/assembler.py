"""
Restraint graph assembly.

Assembly runs in two phases so that callers can change the model in
between (e.g. add or remove hydrogens):

    initialize()  residue records, polymer links, extra links from
                  connections, modifications and effective components
    finalize()    concrete restraints for residues and links, index

assemble() runs both.
"""

from typing import List, Optional

from chemtopo.core.chemcomp import Aliasing, ChemComp, Group, ModificationError
from chemtopo.core.constants import (
    AUTO_LINK_ESD,
    AUTO_NUCLEOTIDE_BOND,
    AUTO_PEPTIDE_BOND,
    CIS_OMEGA_LIMIT,
    NUCLEOTIDE_BOND_MAX,
    PEPTIDE_BOND_MAX,
)
from chemtopo.core.geometry import calc_torsion
from chemtopo.core.restraints import AtomId, Restraints
from chemtopo.core.structures import (
    Atom,
    Connection,
    ConnectionType,
    EntityType,
    Model,
    PolymerType,
    Residue,
    Structure,
    guess_polymer_type,
    is_same_conformer,
    setup_entities,
)
from chemtopo.monlib import MonomerLibrary, atom_matches_with_alias
from chemtopo.topology.adhoc import make_chemcomp_with_restraints
from chemtopo.topology.index import TopologyIndex
from chemtopo.topology.topo import (
    AngleInstance,
    BondInstance,
    ChainInfo,
    ChemCompKey,
    ChiralityInstance,
    FinalChemComp,
    Link,
    PlaneInstance,
    ResInfo,
    RKind,
    Rule,
    Topology,
    TorsionInstance,
)


def assemble(
    structure: Structure,
    monlib: MonomerLibrary,
    model_index: int = 0,
    ignore_unknown_links: bool = False,
    topo: Optional[Topology] = None,
) -> Topology:
    """
    Build the restraint graph of one model.

    Args:
        structure: Structure (connection link ids may be updated)
        monlib: Monomer library (auto links may be registered in it)
        model_index: Index of the model to use
        ignore_unknown_links: Don't make up links missing from monlib
        topo: Topology to fill, a new one if None

    Returns:
        Topology with restraints and index
    """
    if not 0 <= model_index < len(structure.models):
        raise ValueError(f"no such model index: {model_index}")
    if topo is None:
        topo = Topology()
    initialize(topo, structure, structure.models[model_index], monlib,
               ignore_unknown_links)
    finalize(topo, monlib)
    return topo


def initialize(
    topo: Topology,
    structure: Structure,
    model: Model,
    monlib: MonomerLibrary,
    ignore_unknown_links: bool = False,
) -> None:
    """First phase: records, links, modifications and effective components."""
    setup_entities(structure)
    for chain in model.chains:
        for sub in chain.subchains():
            # group_idx is used by AtomId.get_from()
            for i, res in enumerate(sub):
                res.group_idx = 0
                res.group_head = None
                if i != 0 and sub[i - 1].seqid == res.seqid:
                    res.group_idx = sub[i - 1].group_idx + 1
                    res.group_head = sub[i - 1].group_head or sub[i - 1]
            topo.add_chain_info(_make_chain_info(structure, chain, sub))

    auto_monlib = None if ignore_unknown_links else monlib
    for ci in topo.chain_infos:
        for ri in ci.res_infos:
            # left None for residues missing from the library
            ri.orig_chemcomp = monlib.find_component(ri.res.name)
        if ci.polymer and ci.res_infos:
            groups = ci.groups()
            for prev_group, group in zip(groups, groups[1:]):
                for ri in group:
                    for prev_ri in prev_group:
                        add_polymer_links(topo, ci.polymer_type, prev_ri, ri, auto_monlib)

    for conn in structure.connections:
        if conn.conn_type != ConnectionType.HYDROG:
            setup_connection(topo, conn, model, monlib, ignore_unknown_links)

    # polymer links may have been disabled by setup_connection()
    for ri in topo.res_infos():
        for link in ri.prev:
            chem_link = monlib.find_link(link.link_id)
            if chem_link is not None:
                topo.find_resinfo(link.res1).add_mod(chem_link.side1.mod,
                                                     link.aliasing1, link.alt1)
                ri.add_mod(chem_link.side2.mod, link.aliasing2, link.alt2)

    for ri in topo.res_infos():
        if ri.orig_chemcomp is not None:
            _setup_final_chemcomps(topo, ri, monlib)
        else:
            # not cached, ad-hoc restraints are made for each residue
            cc = make_chemcomp_with_restraints(ri.res)
            topo.cc_storage.append(cc)
            ri.chemcomps.append(FinalChemComp("", cc))


def finalize(topo: Topology, monlib: MonomerLibrary) -> None:
    """Second phase: instantiate restraints and build the index."""
    for ri in topo.res_infos():
        for link in ri.prev:
            apply_restraints_from_link(topo, link, monlib)
        require_alt = False
        for final in ri.chemcomps:
            rules = apply_restraints(topo, final.cc.rt, ri.res, None,
                                     final.altloc, "", require_alt)
            ri.monomer_rules.extend(rules)
            require_alt = True
    for link in topo.extras:
        apply_restraints_from_link(topo, link, monlib)
    topo.index = TopologyIndex.build(topo)


def _make_chain_info(structure: Structure, chain, sub: List[Residue]) -> ChainInfo:
    ci = ChainInfo(chain=chain, subchain_name=sub[0].subchain)
    ent = structure.get_entity_of(ci.subchain_name)
    if ent is not None:
        ci.entity_id = ent.name
        ci.polymer = ent.entity_type == EntityType.POLYMER
        ci.polymer_type = ent.polymer_type
        if ci.polymer and ci.polymer_type == PolymerType.UNKNOWN:
            ci.polymer_type = guess_polymer_type(sub)
    ci.res_infos = [ResInfo(res) for res in sub]
    return ci


def _setup_final_chemcomps(topo: Topology, ri: ResInfo, monlib: MonomerLibrary) -> None:
    """
    Make (or take from the cache) the component with modifications
    applied. Different conformers may have different modifications.
    """
    altlocs = ""
    if any(mod.altloc for mod in ri.mods):
        altlocs = ri.res.distinct_altlocs()
    for altloc in altlocs or [""]:
        applicable = [m for m in ri.mods if not m.altloc or m.altloc == altloc]
        key = ChemCompKey(ri.orig_chemcomp.name,
                          tuple((m.alias, m.id) for m in applicable))
        cc = topo.cc_cache.get(key)
        if cc is None:
            cc = ri.orig_chemcomp.copy()
            for mod in applicable:
                chem_mod = monlib.find_modification(mod.id)
                if chem_mod is None:
                    topo.err(f"modification not found: {mod.id}")
                    continue
                try:
                    chem_mod.apply_to(cc, mod.alias)
                except ModificationError as e:
                    topo.err(f"failed to apply modification {chem_mod.id} "
                             f"to {ri.res.name}: {e}")
            topo.cc_cache[key] = cc
        ri.chemcomps.append(FinalChemComp(altloc, cc))
    # usually all conformers get the same modifications
    if len(ri.chemcomps) > 1 and all(f.cc is ri.chemcomps[0].cc for f in ri.chemcomps[1:]):
        ri.chemcomps = [FinalChemComp("", ri.chemcomps[0].cc)]


def _peptide_aliasing(cc: ChemComp) -> Optional[Aliasing]:
    for aliasing in cc.aliases:
        if aliasing.group.is_peptide:
            return aliasing
    return None


def _nucleotide_aliasing(cc: ChemComp) -> Optional[Aliasing]:
    for aliasing in cc.aliases:
        if aliasing.group.is_nucleotide:
            return aliasing
    return None


def _is_cis(res1: Residue, res2: Residue, c: Atom, n: Atom) -> bool:
    """Cis flag from the input, or from the omega angle if it is unknown."""
    if res1.is_cis is not None:
        return res1.is_cis
    ca1 = res1.find_atom("CA", c.altloc or "*", strict_altloc=False)
    ca2 = res2.find_atom("CA", n.altloc or "*", strict_altloc=False)
    if ca1 is None or ca2 is None:
        return False
    omega = calc_torsion(ca1.pos, c.pos, n.pos, ca2.pos)
    return abs(omega) < CIS_OMEGA_LIMIT


def add_polymer_links(
    topo: Topology,
    polymer_type: PolymerType,
    ri1: ResInfo,
    ri2: ResInfo,
    monlib: Optional[MonomerLibrary],
) -> None:
    """
    Link ri2 to the preceding residue ri1.

    One link is added for each pair of bonded conformers. If the
    residues are not bonded a "gap" link is added. Without monlib,
    residues that can't use a standard link are left unlinked.

    Args:
        topo: Topology (unused for now apart from warnings)
        polymer_type: Polymer type of the chain
        ri1: Previous residue
        ri2: Residue that gets the link in its prev list
        monlib: Library for auto links, None to skip them
    """
    cc1 = ri1.orig_chemcomp
    cc2 = ri2.orig_chemcomp
    groups_ok = cc1 is not None and cc2 is not None
    template = Link(res1=ri1.res, res2=ri2.res)

    if polymer_type.is_polypeptide:
        c_name, n_name = "C", "N"
        if cc1 is not None and not cc1.group.is_peptide:
            template.aliasing1 = _peptide_aliasing(cc1)
            if template.aliasing1 is None:
                groups_ok = False
            else:
                c_name = template.aliasing1.name_from_alias(c_name) or c_name
        n_terminus_group = cc2.group if cc2 is not None else Group.NULL
        if cc2 is not None and not cc2.group.is_peptide:
            template.aliasing2 = _peptide_aliasing(cc2)
            if template.aliasing2 is None:
                groups_ok = False
            else:
                n_terminus_group = template.aliasing2.group
                n_name = template.aliasing2.name_from_alias(n_name) or n_name
        for a1 in ri1.res.atoms:
            if a1.name != c_name or a1.element != "C":
                continue
            for a2 in ri2.res.atoms:
                if (a2.name == n_name and a2.element == "N"
                        and is_same_conformer(a1.altloc, a2.altloc)
                        and a1.distance_to(a2) < PEPTIDE_BOND_MAX):
                    link = template.copy()
                    link.alt1 = a1.altloc
                    link.alt2 = a2.altloc
                    if groups_ok:
                        cis = _is_cis(ri1.res, ri2.res, a1, a2)
                        if n_terminus_group == Group.P_PEPTIDE:
                            link.link_id = "PCIS" if cis else "PTRANS"
                        elif n_terminus_group == Group.M_PEPTIDE:
                            link.link_id = "NMCIS" if cis else "NMTRANS"
                        else:
                            link.link_id = "CIS" if cis else "TRANS"
                    elif monlib is not None:
                        link.link_id = monlib.add_auto_link(
                            ri1.res.name, c_name, ri2.res.name, n_name,
                            *AUTO_PEPTIDE_BOND)
                    ri2.prev.append(link)

    elif polymer_type.is_polynucleotide:
        o3_name, p_name = "O3'", "P"
        if cc1 is not None and not cc1.group.is_nucleotide:
            template.aliasing1 = _nucleotide_aliasing(cc1)
            if template.aliasing1 is None:
                groups_ok = False
            else:
                o3_name = template.aliasing1.name_from_alias(o3_name) or o3_name
        if cc2 is not None and not cc2.group.is_nucleotide:
            template.aliasing2 = _nucleotide_aliasing(cc2)
            if template.aliasing2 is None:
                groups_ok = False
            else:
                p_name = template.aliasing2.name_from_alias(p_name) or p_name
        for a1 in ri1.res.atoms:
            if a1.name != o3_name or a1.element != "O":
                continue
            for a2 in ri2.res.atoms:
                if (a2.name == p_name and a2.element == "P"
                        and is_same_conformer(a1.altloc, a2.altloc)
                        and a1.distance_to(a2) < NUCLEOTIDE_BOND_MAX):
                    link = template.copy()
                    link.alt1 = a1.altloc
                    link.alt2 = a2.altloc
                    if groups_ok:
                        link.link_id = "p"
                    elif monlib is not None:
                        link.link_id = monlib.add_auto_link(
                            ri1.res.name, o3_name, ri2.res.name, p_name,
                            *AUTO_NUCLEOTIDE_BOND)
                    ri2.prev.append(link)

    if not ri2.prev:
        gap = template.copy()
        gap.link_id = "gap"
        ri2.prev.append(gap)


def setup_connection(
    topo: Topology,
    conn: Connection,
    model: Model,
    monlib: MonomerLibrary,
    ignore_unknown_links: bool = False,
) -> None:
    """
    Turn an explicit connection into an extra link.

    A named link must exist and fit the connection. An unnamed one gets
    the best matching link from the library, or an auto link restraining
    only the bond length. A polymer link between the same atoms is
    disabled, unless the connection merely repeats it. Side effects:
    conn.link_id may be set and a link may be added to monlib.
    """
    if conn.link_id == "gap":
        polymer_link = topo.find_polymer_link(conn.partner1, conn.partner2)
        if polymer_link is not None:
            polymer_link.link_id = ""
        return

    cra1 = model.find_cra(conn.partner1)
    cra2 = model.find_cra(conn.partner2)
    if cra1.atom is None or cra2.atom is None:
        return
    extra = Link(res1=cra1.residue, res2=cra2.residue,
                 alt1=conn.partner1.altloc, alt2=conn.partner2.altloc,
                 asu=conn.asu)

    match = None
    if conn.link_id:
        match = monlib.find_link(conn.link_id)
        if match is None:
            topo.err(f"link not found in monomer library: {conn.link_id}")
            return
        ok1, extra.aliasing1 = monlib.link_side_matches(match.side1, extra.res1.name)
        ok2, extra.aliasing2 = monlib.link_side_matches(match.side2, extra.res2.name)
        if (not match.rt.bonds or not ok1 or not ok2
                or not atom_matches_with_alias(match.rt.bonds[0].id1.atom,
                                               conn.partner1.atom_name, extra.aliasing1)
                or not atom_matches_with_alias(match.rt.bonds[0].id2.atom,
                                               conn.partner2.atom_name, extra.aliasing2)):
            topo.err(f"link from the monomer library does not match: {conn.link_id}")
            return
    else:
        match, invert, extra.aliasing1, extra.aliasing2 = monlib.match_link(
            extra.res1, conn.partner1.atom_name, extra.alt1,
            extra.res2, conn.partner2.atom_name, extra.alt2)
        if match is not None:
            conn.link_id = match.id
            if invert:
                extra.res1, extra.res2 = extra.res2, extra.res1
                extra.alt1, extra.alt2 = extra.alt2, extra.alt1
                extra.aliasing1, extra.aliasing2 = extra.aliasing2, extra.aliasing1

    # use either the polymer link or the LINK record, not both
    polymer_link = topo.find_polymer_link(conn.partner1, conn.partner2)
    if polymer_link is not None:
        if (not conn.link_id and polymer_link.link_id
                and polymer_link.link_id != "gap"
                and (match is None or (not match.side1.comp and not match.side2.comp))):
            return
        polymer_link.link_id = ""

    if match is not None:
        extra.link_id = match.id
        topo.find_resinfo(extra.res1).add_mod(match.side1.mod, extra.aliasing1, extra.alt1)
        topo.find_resinfo(extra.res2).add_mod(match.side2.mod, extra.aliasing2, extra.alt2)
    else:
        if ignore_unknown_links:
            return
        ideal = monlib.ideal_distance(cra1.atom, cra2.atom)
        extra.link_id = monlib.add_auto_link(
            extra.res1.name, conn.partner1.atom_name,
            extra.res2.name, conn.partner2.atom_name,
            ideal, AUTO_LINK_ESD)
    if not conn.link_id:
        conn.link_id = extra.link_id
    topo.extras.append(extra)


def apply_restraints(
    topo: Topology,
    rt: Restraints,
    res: Residue,
    res2: Optional[Residue],
    altloc1: str,
    altloc2: str,
    require_alt: bool,
) -> List[Rule]:
    """
    Instantiate restraint templates on atoms of one or two residues.

    With no altloc given, templates are tried for each altloc of the
    residue(s); a restraint whose atoms have no altloc is made once.
    Templates with missing atoms are skipped.

    Args:
        topo: Topology that receives the instances
        rt: Restraint templates
        res: Residue for comp 1 atoms
        res2: Residue for comp 2 atoms (links), or None
        altloc1, altloc2: Conformers to use, "" for all
        require_alt: Make only restraints that involve an altloc

    Returns:
        Rules pointing to the new instances
    """
    altlocs = ""
    if not altloc1 and not altloc2:
        altlocs = res.distinct_altlocs()
        if res2 is not None:
            for alt in res2.distinct_altlocs():
                if alt not in altlocs:
                    altlocs += alt
    if not altlocs:
        altlocs = altloc1 or altloc2

    rules: List[Rule] = []

    def instantiate(templates, container, kind, factory, min_atoms=None):
        for restr in templates:
            for alt in altlocs or [""]:
                found = [i.get_from(res, res2, alt, altloc2) for i in restr.atom_ids()]
                if min_atoms is None:
                    if any(a is None for a in found):
                        continue
                    atoms = found
                else:
                    atoms = [a for a in found if a is not None]
                with_alt = any(a.altloc for a in atoms)
                enough = min_atoms is None or len(atoms) >= min_atoms
                if enough and (with_alt or not require_alt):
                    rules.append(Rule(kind, len(container)))
                    container.append(factory(restr, atoms))
                if not with_alt:
                    break

    instantiate(rt.bonds, topo.bonds, RKind.BOND,
                lambda r, a: BondInstance(r, tuple(a)))
    instantiate(rt.angles, topo.angles, RKind.ANGLE,
                lambda r, a: AngleInstance(r, tuple(a)))
    instantiate(rt.torsions, topo.torsions, RKind.TORSION,
                lambda r, a: TorsionInstance(r, tuple(a)))
    instantiate(rt.chirs, topo.chirs, RKind.CHIRALITY,
                lambda r, a: ChiralityInstance(r, tuple(a)))
    instantiate(rt.planes, topo.planes, RKind.PLANE,
                lambda r, a: PlaneInstance(r, a), min_atoms=4)
    return rules


def apply_restraints_from_link(topo: Topology, link: Link, monlib: MonomerLibrary) -> None:
    if not link.link_id or link.link_id == "gap":
        return
    chem_link = monlib.find_link(link.link_id)
    if chem_link is None:
        topo.err(f"ignoring link '{link.link_id}' as it is not in the monomer library")
        return
    rt = chem_link.rt
    if link.alt1 and link.alt2 and link.alt1 != link.alt2:
        topo.err(f"LINK between different conformers: {link.alt1} (in {link.res1.name}) "
                 f"and {link.alt2} (in {link.res2.name}).")
    if link.aliasing1 is not None or link.aliasing2 is not None:
        rt = rt.copy()
        if link.aliasing1 is not None:
            for name, std in link.aliasing1.related:
                rt.rename_atom(AtomId(1, std), name)
        if link.aliasing2 is not None:
            for name, std in link.aliasing2.related:
                rt.rename_atom(AtomId(2, std), name)
        topo.rt_storage.append(rt)
    rules = apply_restraints(topo, rt, link.res1, link.res2, link.alt1, link.alt2, False)
    link.link_rules.extend(rules)
