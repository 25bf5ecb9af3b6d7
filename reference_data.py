"""
Read-only country reference data.
Built-in profiles for the major powers and coalition members, with fixed
fallbacks for unknown codes.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple
import random


@dataclass(frozen=True)
class CountryProfile:
    code: str
    name: str
    population: int
    economy: float  # 0-100 prosperity index
    authority: float  # 0-100
    religion: str = "Unknown"
    culture: str = "Unknown"
    language: str = "Unknown"
    government: str = "Republic"
    orientation: int = 0
    freedom: int = 3
    military: int = 3
    aggression: int = 3
    unrest: int = 3
    leader: str = "Unknown"
    leader_popularity: int = 3
    centroid: Optional[Tuple[float, float]] = None  # (lat, lon)
    area_km2: float = 100_000.0
    allies: Tuple[str, ...] = ()
    enemies: Tuple[str, ...] = ()
    trade_partners: Tuple[str, ...] = ()


# code: name, pop, economy, authority, religion, culture, language, government,
#       orientation, freedom, military, aggression, unrest, leader, (lat, lon), area,
#       allies, enemies, trade
_RAW_PROFILES = {
    "USA": ("United States", 333_000_000, 95, 40, "Christianity", "Anglo", "English", "Presidential Republic",
            20, 5, 5, 3, 2, "President", (39.8, -98.6), 9_833_520,
            ("GBR", "CAN", "JPN", "KOR", "ISR", "AUS"), ("IRN", "PRK"), ("CHN", "MEX", "CAN", "JPN", "DEU", "KOR")),
    "CHN": ("China", 1_410_000_000, 70, 90, "Irreligion", "Sinic", "Mandarin", "One-Party State",
            -60, 1, 5, 3, 2, "General Secretary", (35.0, 103.0), 9_596_960,
            ("PRK", "PAK", "RUS"), ("USA",), ("USA", "JPN", "KOR", "DEU", "BRA", "AUS", "VNM")),
    "RUS": ("Russia", 144_000_000, 55, 85, "Orthodox", "Slavic", "Russian", "Federal Autocracy",
            40, 1, 5, 5, 3, "President", (61.5, 105.3), 17_098_240,
            ("BLR", "KAZ", "ARM", "CHN"), ("UKR",), ("CHN", "IND", "TUR", "KAZ")),
    "GBR": ("United Kingdom", 67_000_000, 85, 35, "Christianity", "Anglo", "English", "Constitutional Monarchy",
            10, 5, 4, 2, 2, "Prime Minister", (54.0, -2.0), 242_495,
            ("USA", "FRA", "CAN", "AUS"), (), ("USA", "DEU", "FRA", "NLD", "CHN")),
    "FRA": ("France", 68_000_000, 82, 40, "Christianity", "Latin", "French", "Semi-Presidential Republic",
            0, 5, 4, 2, 3, "President", (46.2, 2.2), 551_695,
            ("DEU", "GBR", "USA"), (), ("DEU", "ITA", "ESP", "BEL", "USA")),
    "DEU": ("Germany", 84_000_000, 88, 35, "Christianity", "Germanic", "German", "Federal Republic",
            0, 5, 3, 1, 2, "Chancellor", (51.2, 10.4), 357_022,
            ("FRA", "NLD", "POL", "USA"), (), ("FRA", "NLD", "USA", "CHN", "POL", "ITA")),
    "ITA": ("Italy", 59_000_000, 75, 40, "Christianity", "Latin", "Italian", "Parliamentary Republic",
            20, 5, 3, 2, 3, "Prime Minister", (41.9, 12.6), 301_340,
            ("FRA", "DEU", "ESP"), (), ("DEU", "FRA", "ESP", "USA")),
    "CAN": ("Canada", 39_000_000, 86, 30, "Christianity", "Anglo", "English", "Constitutional Monarchy",
            -10, 5, 3, 1, 1, "Prime Minister", (56.1, -106.3), 9_984_670,
            ("USA", "GBR"), (), ("USA", "CHN", "MEX")),
    "ESP": ("Spain", 48_000_000, 72, 40, "Christianity", "Latin", "Spanish", "Constitutional Monarchy",
            -10, 5, 3, 1, 3, "Prime Minister", (40.5, -3.7), 505_990,
            ("FRA", "ITA"), (), ("FRA", "DEU", "ITA", "MEX")),
    "POL": ("Poland", 37_000_000, 65, 45, "Christianity", "Slavic", "Polish", "Parliamentary Republic",
            30, 4, 4, 2, 2, "Prime Minister", (51.9, 19.1), 312_696,
            ("DEU", "USA", "UKR"), ("RUS",), ("DEU", "CZE", "FRA")),
    "TUR": ("Turkey", 85_000_000, 55, 70, "Islam", "Turkic", "Turkish", "Presidential Republic",
            40, 2, 4, 4, 3, "President", (38.9, 35.2), 783_562,
            ("AZE",), ("ARM",), ("DEU", "RUS", "IRN")),
    "NLD": ("Netherlands", 17_800_000, 90, 30, "Irreligion", "Germanic", "Dutch", "Constitutional Monarchy",
            0, 5, 2, 1, 1, "Prime Minister", (52.1, 5.3), 41_850,
            ("DEU", "GBR"), (), ("DEU", "GBR", "FRA", "USA", "CHN")),
    "NOR": ("Norway", 5_500_000, 95, 25, "Christianity", "Nordic", "Norwegian", "Constitutional Monarchy",
            -10, 5, 2, 1, 1, "Prime Minister", (60.5, 8.5), 385_207,
            ("SWE", "GBR"), (), ("GBR", "DEU", "SWE")),
    "SWE": ("Sweden", 10_500_000, 90, 25, "Christianity", "Nordic", "Swedish", "Constitutional Monarchy",
            -20, 5, 3, 1, 1, "Prime Minister", (60.1, 18.6), 450_295,
            ("NOR", "DEU"), (), ("NOR", "DEU", "FIN")),
    "BRA": ("Brazil", 216_000_000, 50, 45, "Christianity", "Latin", "Portuguese", "Presidential Republic",
            -20, 4, 3, 2, 3, "President", (-14.2, -51.9), 8_515_770,
            ("ARG",), (), ("CHN", "USA", "ARG")),
    "IND": ("India", 1_420_000_000, 40, 55, "Hinduism", "Indic", "Hindi", "Parliamentary Republic",
            30, 4, 4, 3, 3, "Prime Minister", (20.6, 79.0), 3_287_263,
            ("RUS",), ("PAK",), ("USA", "CHN", "ARE")),
    "ZAF": ("South Africa", 60_000_000, 40, 40, "Christianity", "Bantu", "Zulu", "Parliamentary Republic",
            -20, 4, 2, 1, 4, "President", (-30.6, 22.9), 1_221_037,
            (), (), ("CHN", "USA", "DEU")),
    "EGY": ("Egypt", 112_000_000, 35, 80, "Islam", "Arab", "Arabic", "Presidential Republic",
            20, 2, 4, 3, 4, "President", (26.8, 30.8), 1_002_450,
            ("SAU",), (), ("CHN", "USA", "SAU")),
    "IRN": ("Iran", 89_000_000, 35, 90, "Islam", "Persian", "Persian", "Theocratic Republic",
            70, 1, 4, 4, 4, "Supreme Leader", (32.4, 53.7), 1_648_195,
            ("RUS",), ("USA", "ISR", "SAU"), ("CHN", "TUR")),
    "BLR": ("Belarus", 9_200_000, 35, 90, "Orthodox", "Slavic", "Belarusian", "Presidential Autocracy",
            30, 1, 2, 3, 3, "President", (53.7, 27.9), 207_600,
            ("RUS",), ("POL",), ("RUS",)),
    "KAZ": ("Kazakhstan", 19_600_000, 45, 80, "Islam", "Turkic", "Kazakh", "Presidential Republic",
            10, 2, 2, 2, 3, "President", (48.0, 66.9), 2_724_900,
            ("RUS",), (), ("RUS", "CHN")),
    "ARM": ("Armenia", 2_800_000, 35, 50, "Christianity", "Armenian", "Armenian", "Parliamentary Republic",
            0, 3, 2, 2, 3, "Prime Minister", (40.1, 45.0), 29_743,
            ("RUS",), ("AZE", "TUR"), ("RUS", "IRN")),
    "AZE": ("Azerbaijan", 10_300_000, 40, 85, "Islam", "Turkic", "Azerbaijani", "Presidential Republic",
            30, 1, 3, 4, 3, "President", (40.1, 47.6), 86_600,
            ("TUR",), ("ARM",), ("TUR", "RUS")),
    "JPN": ("Japan", 124_000_000, 85, 35, "Shinto", "Japanese", "Japanese", "Constitutional Monarchy",
            20, 5, 3, 1, 1, "Prime Minister", (36.2, 138.3), 377_975,
            ("USA", "AUS"), ("PRK",), ("CHN", "USA", "KOR")),
    "KOR": ("South Korea", 51_700_000, 80, 35, "Irreligion", "Korean", "Korean", "Presidential Republic",
            10, 5, 4, 2, 2, "President", (35.9, 127.8), 100_210,
            ("USA",), ("PRK",), ("CHN", "USA", "JPN", "VNM")),
    "PRK": ("North Korea", 26_000_000, 10, 100, "Irreligion", "Korean", "Korean", "One-Party State",
            -90, 1, 4, 5, 2, "Supreme Leader", (40.3, 127.5), 120_540,
            ("CHN",), ("KOR", "USA", "JPN"), ("CHN",)),
    "ISR": ("Israel", 9_800_000, 85, 45, "Judaism", "Semitic", "Hebrew", "Parliamentary Republic",
            40, 4, 5, 4, 3, "Prime Minister", (31.0, 34.9), 20_770,
            ("USA",), ("IRN",), ("USA", "CHN", "DEU")),
    "SAU": ("Saudi Arabia", 36_000_000, 70, 95, "Islam", "Arab", "Arabic", "Absolute Monarchy",
            60, 1, 4, 3, 2, "King", (23.9, 45.1), 2_149_690,
            ("USA", "EGY"), ("IRN",), ("CHN", "USA", "IND", "JPN")),
    "PAK": ("Pakistan", 240_000_000, 25, 65, "Islam", "Indic", "Urdu", "Parliamentary Republic",
            30, 2, 4, 4, 4, "Prime Minister", (30.4, 69.3), 881_913,
            ("CHN",), ("IND",), ("CHN", "USA", "ARE")),
    "UKR": ("Ukraine", 37_000_000, 30, 50, "Orthodox", "Slavic", "Ukrainian", "Semi-Presidential Republic",
            10, 3, 4, 2, 4, "President", (48.4, 31.2), 603_550,
            ("POL", "USA"), ("RUS",), ("POL", "DEU", "TUR")),
    "MEX": ("Mexico", 128_000_000, 50, 45, "Christianity", "Latin", "Spanish", "Presidential Republic",
            -20, 3, 2, 1, 4, "President", (23.6, -102.5), 1_964_375,
            (), (), ("USA", "CAN", "CHN")),
    "AUS": ("Australia", 26_600_000, 88, 30, "Christianity", "Anglo", "English", "Constitutional Monarchy",
            10, 5, 3, 2, 1, "Prime Minister", (-25.3, 133.8), 7_692_024,
            ("USA", "GBR", "JPN"), (), ("CHN", "JPN", "USA", "KOR")),
    "VNM": ("Vietnam", 99_000_000, 40, 85, "Irreligion", "Vietic", "Vietnamese", "One-Party State",
            -60, 1, 3, 2, 2, "General Secretary", (14.1, 108.3), 331_212,
            (), (), ("CHN", "USA", "KOR")),
    "ARG": ("Argentina", 46_000_000, 45, 40, "Christianity", "Latin", "Spanish", "Presidential Republic",
            30, 4, 2, 2, 4, "President", (-38.4, -63.6), 2_780_400,
            ("BRA",), ("GBR",), ("BRA", "CHN", "USA")),
}


def _build_profiles() -> Dict[str, CountryProfile]:
    profiles = {}
    for code, raw in _RAW_PROFILES.items():
        (name, pop, economy, authority, religion, culture, language, government,
         orientation, freedom, military, aggression, unrest, leader, centroid, area,
         allies, enemies, trade) = raw
        profiles[code] = CountryProfile(
            code=code, name=name, population=pop, economy=economy, authority=authority,
            religion=religion, culture=culture, language=language, government=government,
            orientation=orientation, freedom=freedom, military=military, aggression=aggression,
            unrest=unrest, leader=leader, centroid=centroid, area_km2=float(area),
            allies=tuple(allies), enemies=tuple(enemies), trade_partners=tuple(trade),
        )
    return profiles


class ReferenceDataProvider:
    """Lookup of country profiles by code, with fixed defaults for unknown codes."""

    DEFAULT_ECONOMY = 50.0
    DEFAULT_AUTHORITY = 50.0

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def codes(self) -> List[str]:
        raise NotImplementedError

    def get(self, code: str) -> Optional[CountryProfile]:
        raise NotImplementedError

    def profile_or_default(self, code: str) -> CountryProfile:
        """Return the stored profile, or a neutral one with a 1-5M random population."""
        profile = self.get(code)
        if profile is not None:
            return profile
        return CountryProfile(
            code=code,
            name=code,
            population=self.rng.randint(1_000_000, 5_000_000),
            economy=self.DEFAULT_ECONOMY,
            authority=self.DEFAULT_AUTHORITY,
        )


class StaticReferenceData(ReferenceDataProvider):
    """Built-in table of real countries."""

    def __init__(self, profiles: Optional[Dict[str, CountryProfile]] = None, rng: Optional[random.Random] = None):
        super().__init__(rng)
        self.profiles = dict(profiles) if profiles is not None else _build_profiles()

    def codes(self) -> List[str]:
        return list(self.profiles.keys())

    def get(self, code: str) -> Optional[CountryProfile]:
        return self.profiles.get(code)
