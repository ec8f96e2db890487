"""Static location lookup tables for Slovak listings.

Keys are ASCII-folded lowercase fragments; values are display names.
"""

from typing import Final

CITY_NAMES: Final[dict[str, str]] = {
    "bratislava": "Bratislava",
    "kosice": "Košice",
    "presov": "Prešov",
    "zilina": "Žilina",
    "banska bystrica": "Banská Bystrica",
    "trnava": "Trnava",
    "trencin": "Trenčín",
    "nitra": "Nitra",
    "poprad": "Poprad",
    "martin": "Martin",
    "zvolen": "Zvolen",
    "prievidza": "Prievidza",
    "michalovce": "Michalovce",
    "spisska nova ves": "Spišská Nová Ves",
    "humenne": "Humenné",
    "levice": "Levice",
    "komarno": "Komárno",
    "nove zamky": "Nové Zámky",
    "dunajska streda": "Dunajská Streda",
    "ruzomberok": "Ružomberok",
    "liptovsky mikulas": "Liptovský Mikuláš",
    "lucenec": "Lučenec",
    "piestany": "Piešťany",
    "pezinok": "Pezinok",
    "senec": "Senec",
    "malacky": "Malacky",
    "skalica": "Skalica",
    "senica": "Senica",
    "hlohovec": "Hlohovec",
    "sered": "Sereď",
    "galanta": "Galanta",
    "samorin": "Šamorín",
    "sala": "Šaľa",
    "sturovo": "Štúrovo",
    "partizanske": "Partizánske",
    "nove mesto nad vahom": "Nové Mesto nad Váhom",
    "dubnica nad vahom": "Dubnica nad Váhom",
    "povazska bystrica": "Považská Bystrica",
    "bytca": "Bytča",
    "cadca": "Čadca",
    "dolny kubin": "Dolný Kubín",
    "namestovo": "Námestovo",
    "kysucke nove mesto": "Kysucké Nové Mesto",
    "tvrdosin": "Tvrdošín",
    "brezno": "Brezno",
    "ziar nad hronom": "Žiar nad Hronom",
    "zarnovica": "Žarnovica",
    "kremnica": "Kremnica",
    "rimavska sobota": "Rimavská Sobota",
    "roznava": "Rožňava",
    "revuca": "Revúca",
    "velky krtis": "Veľký Krtíš",
    "kezmarok": "Kežmarok",
    "stara lubovna": "Stará Ľubovňa",
    "svit": "Svit",
    "stropkov": "Stropkov",
    "svidnik": "Svidník",
    "bardejov": "Bardejov",
    "vranov nad toplou": "Vranov nad Topľou",
    "snina": "Snina",
    "sobrance": "Sobrance",
    "trebisov": "Trebišov",
    "secovce": "Sečovce",
    "kralovsky chlmec": "Kráľovský Chlmec",
    "medzilaborce": "Medzilaborce",
}

# (fragment, city, district) in table order; ties on fragment keep the first.
DISTRICT_FRAGMENTS: Final[tuple[tuple[str, str, str], ...]] = (
    ("petrzalka", "Bratislava", "Petržalka"),
    ("ruzinov", "Bratislava", "Ružinov"),
    ("dubravka", "Bratislava", "Dúbravka"),
    ("nove mesto", "Bratislava", "Nové Mesto"),
    ("stare mesto", "Bratislava", "Staré Mesto"),
    ("karlova ves", "Bratislava", "Karlova Ves"),
    ("devinska nova ves", "Bratislava", "Devínska Nová Ves"),
    ("devin", "Bratislava", "Devín"),
    ("lamac", "Bratislava", "Lamač"),
    ("raca", "Bratislava", "Rača"),
    ("vajnory", "Bratislava", "Vajnory"),
    ("podunajske biskupice", "Bratislava", "Podunajské Biskupice"),
    ("vrakuna", "Bratislava", "Vrakuňa"),
    ("jarovce", "Bratislava", "Jarovce"),
    ("rusovce", "Bratislava", "Rusovce"),
    ("cunovo", "Bratislava", "Čunovo"),
    ("stare mesto", "Košice", "Staré Mesto"),
    ("terasa", "Košice", "Terasa"),
    ("tahanovce", "Košice", "Ťahanovce"),
    ("saca", "Košice", "Šaca"),
    ("sidlisko kvp", "Košice", "Sídlisko KVP"),
    ("dargovskych hrdinov", "Košice", "Dargovských hrdinov"),
    ("juh", "Košice", "Juh"),
    ("sever", "Košice", "Sever"),
    ("zapad", "Košice", "Západ"),
)

# Three-digit prefixes are checked before the one-digit Bratislava prefix.
POSTAL_PREFIX_TO_CITY: Final[dict[str, str]] = {
    "8": "Bratislava",
    "040": "Košice",
    "041": "Košice",
    "042": "Košice",
    "043": "Košice",
    "080": "Prešov",
    "081": "Prešov",
    "082": "Prešov",
    "010": "Žilina",
    "011": "Žilina",
    "012": "Žilina",
    "974": "Banská Bystrica",
    "975": "Banská Bystrica",
    "917": "Trnava",
    "918": "Trnava",
    "949": "Nitra",
    "950": "Nitra",
    "911": "Trenčín",
    "912": "Trenčín",
}

# Words that look like place names in titles but never are.
LOCATION_STOP_WORDS: Final[frozenset[str]] = frozenset(
    {
        "predaj",
        "prenajom",
        "byt",
        "dom",
        "izb",
        "izbovy",
        "nova",
        "stara",
        "pri",
        "nad",
        "pod",
        "ulica",
        "slovensko",
        "slovakia",
        "okres",
        "kraj",
    }
)
