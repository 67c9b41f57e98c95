"""
Static clinical and geographic lookup tables.

All tables are read-only mappings. Services take them as keyword arguments
defaulting to these instances, so tests can pass minimal substitutes.
"""

from collections.abc import Mapping
from types import MappingProxyType

from surveillance.domain.models import SyndromeCategory

S = SyndromeCategory

SYNDROME_KEYWORDS: Mapping[SyndromeCategory, tuple[str, ...]] = MappingProxyType(
    {
        S.RESPIRATORY_UPPER: (
            "cough", "sore throat", "pharyngitis", "rhinorrhea", "congestion",
            "nasal", "sinusitis", "uri", "cold", "influenza", "flu", "strep",
            "tonsillitis", "laryngitis", "croup", "sneezing",
        ),
        S.RESPIRATORY_LOWER: (
            "pneumonia", "bronchitis", "bronchiolitis", "dyspnea", "shortness of breath",
            "sob", "wheezing", "rsv", "respiratory syncytial", "pleurisy",
            "lung", "pulmonary", "covid", "sars", "ards", "hypoxia", "oxygen",
            "chest tightness", "respiratory failure", "respiratory distress",
        ),
        S.GASTROINTESTINAL: (
            "nausea", "vomiting", "diarrhea", "abdominal pain", "gastroenteritis",
            "norovirus", "rotavirus", "food poisoning", "dehydration", "gi",
            "bloody stool", "dysentery", "salmonella", "e. coli", "campylobacter",
            "c. diff", "clostridium",
        ),
        S.NEUROLOGICAL: (
            "headache", "meningitis", "encephalitis", "seizure", "altered mental status",
            "confusion", "ams", "west nile", "guillain-barre", "paralysis",
            "paresthesia", "neck stiffness", "photophobia", "eee", "eastern equine",
        ),
        S.FEBRILE_RASH: (
            "rash", "fever rash", "measles", "rubella", "varicella", "chickenpox",
            "mpox", "monkeypox", "vesicular", "maculopapular", "petechial",
            "exanthem", "hand foot mouth", "hfmd",
        ),
        S.HEMORRHAGIC: (
            "hemorrhagic", "bleeding", "ebola", "marburg", "hantavirus",
            "dengue hemorrhagic", "dic", "disseminated intravascular",
        ),
        S.SEPSIS_SHOCK: (
            "sepsis", "septic shock", "bacteremia", "sirs", "fever", "febrile",
            "chills", "rigors", "hypotension", "tachycardia", "lactic acidosis",
            "organ failure",
        ),
        S.CARDIOVASCULAR: (
            "myocarditis", "pericarditis", "kawasaki", "endocarditis",
            "rheumatic fever", "cardiomyopathy",
        ),
        S.VECTOR_BORNE: (
            "tick", "mosquito", "lyme", "rocky mountain spotted fever", "rmsf",
            "ehrlichiosis", "anaplasmosis", "babesiosis", "zika", "dengue",
            "malaria", "chikungunya", "west nile", "powassan",
        ),
        S.BIOTERRORISM_SENTINEL: (
            "anthrax", "smallpox", "botulism", "tularemia", "plague",
            "viral hemorrhagic", "ricin", "q fever",
        ),
    }
)

# Condition -> expected presenting symptoms (symptom_match scoring)
PATHOGEN_SYMPTOMS: Mapping[str, tuple[str, ...]] = MappingProxyType(
    {
        "Influenza": ("fever", "cough", "myalgia", "headache", "fatigue", "sore throat", "chills"),
        "COVID-19": (
            "fever", "cough", "dyspnea", "fatigue", "anosmia", "ageusia", "myalgia", "sore throat",
        ),
        "SARS-CoV-2": (
            "fever", "cough", "dyspnea", "fatigue", "anosmia", "ageusia", "myalgia", "sore throat",
        ),
        "RSV": (
            "cough", "wheezing", "rhinorrhea", "fever", "dyspnea", "bronchiolitis",
            "respiratory distress",
        ),
        "Norovirus": ("nausea", "vomiting", "diarrhea", "abdominal pain", "fever", "dehydration"),
        "Mpox": ("rash", "fever", "lymphadenopathy", "myalgia", "headache", "vesicular"),
        "West Nile Virus": (
            "fever", "headache", "fatigue", "rash", "myalgia", "meningitis", "encephalitis",
        ),
        "Lyme Disease": (
            "rash", "fever", "headache", "fatigue", "joint pain", "tick bite", "erythema migrans",
        ),
        "Dengue": ("fever", "headache", "myalgia", "rash", "hemorrhagic", "thrombocytopenia"),
        "Salmonella": ("diarrhea", "fever", "abdominal pain", "nausea", "vomiting"),
        "E. coli": ("diarrhea", "bloody stool", "abdominal pain", "hus", "hemolytic uremic"),
        "Measles": ("rash", "fever", "cough", "conjunctivitis", "coryza", "koplik"),
        "Pertussis": ("cough", "whooping cough", "paroxysmal", "post-tussive vomiting"),
        "Meningococcal Disease": (
            "fever", "headache", "neck stiffness", "rash", "petechial", "altered mental status",
        ),
    }
)

# Condition -> peak months (1-12)
SEASONAL_PEAKS: Mapping[str, tuple[int, ...]] = MappingProxyType(
    {
        "Influenza": (11, 12, 1, 2, 3),
        "COVID-19": (1, 2, 7, 8, 11, 12),
        "SARS-CoV-2": (1, 2, 7, 8, 11, 12),
        "RSV": (10, 11, 12, 1, 2),
        "Norovirus": (11, 12, 1, 2, 3),
        "West Nile Virus": (6, 7, 8, 9, 10),
        "Lyme Disease": (5, 6, 7, 8),
        "Dengue": (6, 7, 8, 9, 10),
    }
)

# Lowercased condition -> related differential terms worth partial credit
CONDITION_FAMILIES: Mapping[str, tuple[str, ...]] = MappingProxyType(
    {
        "influenza": ("flu", "influenza a", "influenza b", "h1n1"),
        "covid-19": ("sars-cov-2", "coronavirus", "covid"),
        "sars-cov-2": ("covid-19", "coronavirus", "covid"),
        "rsv": ("respiratory syncytial", "bronchiolitis"),
        "norovirus": ("gastroenteritis", "viral gastroenteritis"),
        "west nile virus": ("west nile", "arboviral"),
        "lyme disease": ("lyme", "erythema migrans"),
    }
)

STATE_TO_HHS_REGION: Mapping[str, int] = MappingProxyType(
    {
        "CT": 1, "ME": 1, "MA": 1, "NH": 1, "RI": 1, "VT": 1,
        "NJ": 2, "NY": 2, "PR": 2, "VI": 2,
        "DE": 3, "DC": 3, "MD": 3, "PA": 3, "VA": 3, "WV": 3,
        "AL": 4, "FL": 4, "GA": 4, "KY": 4, "MS": 4, "NC": 4, "SC": 4, "TN": 4,
        "IL": 5, "IN": 5, "MI": 5, "MN": 5, "OH": 5, "WI": 5,
        "AR": 6, "LA": 6, "NM": 6, "OK": 6, "TX": 6,
        "IA": 7, "KS": 7, "MO": 7, "NE": 7,
        "CO": 8, "MT": 8, "ND": 8, "SD": 8, "UT": 8, "WY": 8,
        "AZ": 9, "CA": 9, "HI": 9, "NV": 9, "AS": 9, "GU": 9, "MP": 9,
        "AK": 10, "ID": 10, "OR": 10, "WA": 10,
    }
)

STATE_NAMES: Mapping[str, str] = MappingProxyType(
    {
        "AL": "Alabama", "AK": "Alaska", "AZ": "Arizona", "AR": "Arkansas",
        "CA": "California", "CO": "Colorado", "CT": "Connecticut", "DE": "Delaware",
        "DC": "District of Columbia", "FL": "Florida", "GA": "Georgia", "HI": "Hawaii",
        "ID": "Idaho", "IL": "Illinois", "IN": "Indiana", "IA": "Iowa", "KS": "Kansas",
        "KY": "Kentucky", "LA": "Louisiana", "ME": "Maine", "MD": "Maryland",
        "MA": "Massachusetts", "MI": "Michigan", "MN": "Minnesota", "MS": "Mississippi",
        "MO": "Missouri", "MT": "Montana", "NE": "Nebraska", "NV": "Nevada",
        "NH": "New Hampshire", "NJ": "New Jersey", "NM": "New Mexico", "NY": "New York",
        "NC": "North Carolina", "ND": "North Dakota", "OH": "Ohio", "OK": "Oklahoma",
        "OR": "Oregon", "PA": "Pennsylvania", "RI": "Rhode Island", "SC": "South Carolina",
        "SD": "South Dakota", "TN": "Tennessee", "TX": "Texas", "UT": "Utah",
        "VT": "Vermont", "VA": "Virginia", "WA": "Washington", "WV": "West Virginia",
        "WI": "Wisconsin", "WY": "Wyoming", "PR": "Puerto Rico", "VI": "Virgin Islands",
        "AS": "American Samoa", "GU": "Guam", "MP": "Northern Mariana Islands",
    }
)


def lookup_condition(table: Mapping[str, object], condition: str) -> object | None:
    """
    Find a condition's entry case-insensitively.

    Falls back to the longest table key that prefixes the condition, so feed
    labels such as "West Nile Virus disease, Neuroinvasive" reuse the
    "West Nile Virus" entry.
    """
    lowered = condition.strip().lower()
    best_key: str | None = None
    for key in table:
        key_lower = key.lower()
        if key_lower == lowered:
            return table[key]
        if lowered.startswith(key_lower) and (best_key is None or len(key) > len(best_key)):
            best_key = key
    return table[best_key] if best_key is not None else None
