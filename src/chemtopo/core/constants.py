"""
Constants shared by the topology builder and the hydrogen placement code.
"""

import math

# Version
CHEMTOPO_VERSION = "0.3.0"

# Angle conversions
RADDEG = 180.0 / math.pi
DEGRAD = math.pi / 180.0

# Tetrahedral angle used when a restraint is missing
TETRAHEDRAL_ANGLE = 109.47122

# Maximum bond lengths for polymer links are the ideal lengths times 1.5
PEPTIDE_BOND_MAX = 1.341 * 1.5
NUCLEOTIDE_BOND_MAX = 1.6 * 1.5

# Ideal values (and esds) of auto-generated polymer links
AUTO_PEPTIDE_BOND = (1.34, 0.04)
AUTO_NUCLEOTIDE_BOND = (1.606, 0.02)

# Esd of auto-generated extra links
AUTO_LINK_ESD = 0.02

# Ad-hoc restraints for residues missing from the monomer library
ADHOC_MIN_BOND_CUTOFF = 2.0
ADHOC_RADIUS_FACTOR = 1.3
ADHOC_HYDROGEN_CUTOFF = 2.5
ADHOC_BOND_ESD = 0.02
ADHOC_ANGLE_ESD = 3.0

# Peptides with omega below this value (degrees) are cis
CIS_OMEGA_LIMIT = 30.0

# Hydrogen placed collinearly if the ideal angle is this close to 180 degrees
LINEAR_ANGLE_TOL = 0.5

# Link matching: fixed torsions deviating more than this (degrees) are penalized
LINK_TORSION_TOL = 15.0

# Element types
HYDROGEN_ELEMENTS = ("H", "D")

# Covalent radii in Angstroms (Cordero et al., 2008; sp3 carbon)
COVALENT_RADII = {
    "H": 0.31, "D": 0.31, "HE": 0.28,
    "LI": 1.28, "BE": 0.96, "B": 0.84, "C": 0.76, "N": 0.71, "O": 0.66,
    "F": 0.57, "NE": 0.58,
    "NA": 1.66, "MG": 1.41, "AL": 1.21, "SI": 1.11, "P": 1.07, "S": 1.05,
    "CL": 1.02, "AR": 1.06,
    "K": 2.03, "CA": 1.76, "SC": 1.70, "TI": 1.60, "V": 1.53, "CR": 1.39,
    "MN": 1.39, "FE": 1.32, "CO": 1.26, "NI": 1.24, "CU": 1.32, "ZN": 1.22,
    "GA": 1.22, "GE": 1.20, "AS": 1.19, "SE": 1.20, "BR": 1.20, "KR": 1.16,
    "RB": 2.20, "SR": 1.95, "MO": 1.54, "RU": 1.46, "RH": 1.42, "PD": 1.39,
    "AG": 1.45, "CD": 1.44, "SN": 1.39, "I": 1.39, "XE": 1.40,
    "CS": 2.44, "BA": 2.15, "W": 1.62, "PT": 1.36, "AU": 1.36, "HG": 1.32,
    "PB": 1.46, "U": 1.96,
}

# Residue names recognized when guessing polymer types
AMINO_ACIDS = {
    "ALA", "ARG", "ASN", "ASP", "CYS", "GLN", "GLU", "GLY", "HIS", "ILE",
    "LEU", "LYS", "MET", "PHE", "PRO", "SER", "THR", "TRP", "TYR", "VAL",
    "MSE", "SEC", "PYL", "UNK",
}
DNA_NUCLEOTIDES = {"DA", "DC", "DG", "DT", "DI", "DU"}
RNA_NUCLEOTIDES = {"A", "C", "G", "U", "I"}
WATER_NAMES = {"HOH", "WAT", "DOD", "H2O", "TIP", "TIP3", "SOL"}


def normalize_element(symbol: str) -> str:
    """Return the element symbol in upper case, "X" if empty."""
    symbol = symbol.strip().upper() if symbol else ""
    return symbol or "X"


def covalent_radius(symbol: str) -> float:
    """
    Get the covalent radius of an element.

    Unknown elements (including "X") get the radius of nitrogen,
    the same substitution used for ad-hoc restraints.
    """
    return COVALENT_RADII.get(normalize_element(symbol), COVALENT_RADII["N"])


def is_hydrogen_element(symbol: str) -> bool:
    return normalize_element(symbol) in HYDROGEN_ELEMENTS
