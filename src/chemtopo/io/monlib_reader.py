"""
Reader for monomer library dictionaries (CCP4 monlib / Refmac format).

A dictionary file holds several data blocks: comp_list and comp_XXX for
chemical components, link_list and link_XXX for links, mod_list and
mod_XXX for modifications. Each block is tokenized by Biopython's
MMCIF2Dict, which handles one block at a time.
"""

import io
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Union

from Bio.PDB.MMCIF2Dict import MMCIF2Dict

from chemtopo.core.chemcomp import (
    Aliasing,
    AtomMod,
    ChemComp,
    ChemLink,
    ChemMod,
    CompAtom,
    Group,
    LinkSide,
)
from chemtopo.core.restraints import (
    Angle,
    AtomId,
    Bond,
    Chirality,
    ChiralityType,
    Plane,
    Restraints,
    Torsion,
)


@dataclass
class MonomerData:
    """Definitions read from one or more dictionary files."""

    components: Dict[str, ChemComp] = field(default_factory=dict)
    links: Dict[str, ChemLink] = field(default_factory=dict)
    mods: Dict[str, ChemMod] = field(default_factory=dict)

    def update(self, other: "MonomerData") -> None:
        self.components.update(other.components)
        self.links.update(other.links)
        self.mods.update(other.mods)


def split_data_blocks(text: str) -> List[str]:
    """Split CIF text into data blocks; anything before the first block is dropped."""
    blocks = []
    current = None
    for line in text.splitlines(keepends=True):
        if line.startswith("data_"):
            current = [line]
            blocks.append(current)
        elif current is not None:
            current.append(line)
    return ["".join(lines) for lines in blocks]


def read_monomer_cif(path: Union[str, Path]) -> MonomerData:
    """
    Read a monomer library file.

    Args:
        path: Path to a .cif dictionary file

    Returns:
        MonomerData with the components, links and modifications it defines
    """
    with open(path) as f:
        return read_monomer_cif_string(f.read())


def read_monomer_cif_string(text: str) -> MonomerData:
    data = MonomerData()
    blocks = [MMCIF2Dict(io.StringIO(b)) for b in split_data_blocks(text)]

    # list blocks go first: they hold groups and link sides
    comp_groups = {}
    link_info = {}
    mod_info = {}
    for block in blocks:
        name = block["data_"]
        if name == "comp_list":
            for row in _table(block, "chem_comp"):
                comp_groups[row["id"]] = row.get("group", ".")
        elif name == "link_list":
            for row in _table(block, "chem_link"):
                link_info[row["id"]] = row
        elif name == "mod_list":
            for row in _table(block, "chem_mod"):
                mod_info[row["id"]] = row

    for block in blocks:
        name = block["data_"]
        if name.startswith("comp_") and name != "comp_list":
            cc = _read_chemcomp(block, name[5:], comp_groups)
            data.components[cc.name] = cc
        elif name.startswith("link_") and name != "link_list":
            link_id = name[5:]
            data.links[link_id] = _read_link(block, link_id, link_info.get(link_id, {}))
        elif name.startswith("mod_") and name != "mod_list":
            mod_id = name[4:]
            data.mods[mod_id] = _read_mod(block, mod_id, mod_info.get(mod_id, {}))

    # links may be declared in link_list without restraints of their own
    for link_id, row in link_info.items():
        if link_id not in data.links:
            data.links[link_id] = _read_link({}, link_id, row)
    return data


def _table(block, category: str) -> List[Dict[str, str]]:
    """Rows of a category (loop or key-value pairs) as dictionaries."""
    prefix = f"_{category}."
    keys = [k for k in block if k.startswith(prefix)]
    if not keys:
        return []
    nrows = len(block[keys[0]])
    return [{k[len(prefix):]: block[k][i] for k in keys} for i in range(nrows)]


def _null(value) -> bool:
    return value is None or value in (".", "?", "")


def _float(value) -> float:
    if _null(value):
        return math.nan
    return float(value)


def _str(value) -> str:
    return "" if _null(value) else value


def _comp(value) -> int:
    return 1 if _null(value) else int(value)


def _read_chemcomp(block, comp_id: str, comp_groups: Dict[str, str]) -> ChemComp:
    group = comp_groups.get(comp_id)
    for row in _table(block, "chem_comp"):
        if row.get("id") == comp_id and not _null(row.get("group")):
            group = row["group"]
    cc = ChemComp(name=comp_id, group=Group.from_string(group))
    for row in _table(block, "chem_comp_atom"):
        charge = row.get("charge", row.get("partial_charge"))
        cc.atoms.append(CompAtom(
            id=row["atom_id"],
            element=row["type_symbol"],
            charge=0.0 if _null(charge) else float(charge),
            chem_type=_str(row.get("type_energy")),
        ))
    cc.rt = _read_restraints(block, "chem_comp", linked=False)
    aliases: Dict[str, Aliasing] = {}
    for row in _table(block, "chem_comp_alias"):
        group_name = row["group"]
        if group_name not in aliases:
            aliases[group_name] = Aliasing(Group.from_string(group_name))
        aliases[group_name].related.append((row["atom_id"], row["atom_id_standard"]))
    cc.aliases = list(aliases.values())
    return cc


def _read_restraints(block, prefix: str, linked: bool) -> Restraints:
    """
    Read restraint loops of a component (prefix chem_comp) or of a link
    (prefix chem_link, where every atom carries its comp number).
    """

    def atom_id(row, n) -> AtomId:
        if linked:
            return AtomId(_comp(row.get(f"atom_{n}_comp_id")), row[f"atom_id_{n}"])
        return AtomId(1, row[f"atom_id_{n}"])

    rt = Restraints()
    for row in _table(block, f"{prefix}_bond"):
        rt.bonds.append(Bond(
            atom_id(row, 1), atom_id(row, 2),
            value=_float(row.get("value_dist")),
            esd=_float(row.get("value_dist_esd")),
            value_nucleus=_float(row.get("value_dist_nucleus")),
            esd_nucleus=_float(row.get("value_dist_nucleus_esd")),
            type=_str(row.get("type", row.get("value_order"))) or "single",
            aromatic=row.get("aromatic", "n").lower() == "y",
        ))
    for row in _table(block, f"{prefix}_angle"):
        rt.angles.append(Angle(
            atom_id(row, 1), atom_id(row, 2), atom_id(row, 3),
            value=_float(row.get("value_angle")),
            esd=_float(row.get("value_angle_esd")),
        ))
    for row in _table(block, f"{prefix}_tor"):
        period = row.get("period")
        rt.torsions.append(Torsion(
            _str(row.get("id")),
            atom_id(row, 1), atom_id(row, 2), atom_id(row, 3), atom_id(row, 4),
            value=_float(row.get("value_angle")),
            esd=_float(row.get("value_angle_esd")),
            period=0 if _null(period) else int(period),
        ))
    for row in _table(block, f"{prefix}_chir"):
        if linked:
            ctr = AtomId(_comp(row.get("atom_centre_comp_id")), row["atom_id_centre"])
        else:
            ctr = AtomId(1, row["atom_id_centre"])
        rt.chirs.append(Chirality(
            ctr, atom_id(row, 1), atom_id(row, 2), atom_id(row, 3),
            sign=ChiralityType.from_string(_str(row.get("volume_sign"))),
        ))
    plane_category = f"{prefix}_plane" if linked else f"{prefix}_plane_atom"
    for row in _table(block, plane_category):
        label = row["plane_id"]
        plane = rt.find_plane(label)
        if plane is None:
            esd = _float(row.get("dist_esd"))
            plane = Plane(label, [], 0.02 if math.isnan(esd) else esd)
            rt.planes.append(plane)
        comp = _comp(row.get("atom_comp_id")) if linked else 1
        plane.ids.append(AtomId(comp, row["atom_id"]))
    return rt


def _read_link(block, link_id: str, info: Dict[str, str]) -> ChemLink:
    return ChemLink(
        id=link_id,
        name=_str(info.get("name")) or link_id,
        side1=LinkSide(_str(info.get("comp_id_1")), _str(info.get("mod_id_1")),
                       Group.from_string(_str(info.get("group_comp_1")))),
        side2=LinkSide(_str(info.get("comp_id_2")), _str(info.get("mod_id_2")),
                       Group.from_string(_str(info.get("group_comp_2")))),
        rt=_read_restraints(block, "chem_link", linked=True) if block else Restraints(),
    )


def _func(value: str) -> str:
    """Normalize "add", "delete", "change" to one letter."""
    return _str(value)[:1].lower()


def _read_mod(block, mod_id: str, info: Dict[str, str]) -> ChemMod:
    mod = ChemMod(
        id=mod_id,
        name=_str(info.get("name")),
        comp_id=_str(info.get("comp_id")),
        group_id=_str(info.get("group_id")),
    )
    for row in _table(block, "chem_mod_atom"):
        charge = row.get("new_charge", row.get("new_partial_charge"))
        mod.atom_mods.append(AtomMod(
            func=_func(row["function"]),
            old_id=_str(row.get("atom_id")),
            new_id=_str(row.get("new_atom_id")),
            element=_str(row.get("new_type_symbol")),
            charge=_float(charge),
            chem_type=_str(row.get("new_type_energy")),
        ))
    for row in _table(block, "chem_mod_bond"):
        mod.restraint_mods.append((_func(row["function"]), Bond(
            AtomId(1, row["atom_id_1"]), AtomId(1, row["atom_id_2"]),
            value=_float(row.get("new_value_dist")),
            esd=_float(row.get("new_value_dist_esd")),
            value_nucleus=_float(row.get("new_value_dist_nucleus")),
            esd_nucleus=_float(row.get("new_value_dist_nucleus_esd")),
            type=_str(row.get("new_type")) or "single",
        )))
    for row in _table(block, "chem_mod_angle"):
        mod.restraint_mods.append((_func(row["function"]), Angle(
            AtomId(1, row["atom_id_1"]), AtomId(1, row["atom_id_2"]),
            AtomId(1, row["atom_id_3"]),
            value=_float(row.get("new_value_angle")),
            esd=_float(row.get("new_value_angle_esd")),
        )))
    for row in _table(block, "chem_mod_tor"):
        period = row.get("new_period")
        mod.restraint_mods.append((_func(row["function"]), Torsion(
            _str(row.get("id")),
            AtomId(1, row["atom_id_1"]), AtomId(1, row["atom_id_2"]),
            AtomId(1, row["atom_id_3"]), AtomId(1, row["atom_id_4"]),
            value=_float(row.get("new_value_angle")),
            esd=_float(row.get("new_value_angle_esd")),
            period=-1 if _null(period) else int(period),
        )))
    for row in _table(block, "chem_mod_chir"):
        mod.restraint_mods.append((_func(row["function"]), Chirality(
            AtomId(1, row["atom_id_centre"]),
            AtomId(1, row["atom_id_1"]), AtomId(1, row["atom_id_2"]),
            AtomId(1, row["atom_id_3"]),
            sign=ChiralityType.from_string(_str(row.get("new_volume_sign"))),
        )))
    for row in _table(block, "chem_mod_plane_atom"):
        esd = _float(row.get("new_dist_esd"))
        mod.restraint_mods.append((_func(row["function"]), Plane(
            row["plane_id"], [AtomId(1, row["atom_id"])],
            0.02 if math.isnan(esd) else esd,
        )))
    return mod
