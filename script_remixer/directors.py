"""Director profiles and the preset sample corpora used for style extraction."""

from dataclasses import dataclass, field
from enum import Enum


class DirectorStyle(str, Enum):
    ANG_LEE = "ANG_LEE"
    WONG_KAR_WAI = "WONG_KAR_WAI"
    EDWARD_YANG = "EDWARD_YANG"
    STEPHEN_CHOW = "STEPHEN_CHOW"
    CUSTOM = "CUSTOM"


@dataclass(frozen=True)
class DirectorProfile:
    id: DirectorStyle
    name: str
    description: str
    keywords: list[str] = field(default_factory=list)
    sample_corpus: str = ""

    @property
    def is_custom(self) -> bool:
        return self.id is DirectorStyle.CUSTOM


DIRECTORS: list[DirectorProfile] = [
    DirectorProfile(
        id=DirectorStyle.ANG_LEE,
        name="Ang Lee",
        description="Eat drink man woman. Repressed emotion, family ethics and food as metaphor.",
        keywords=["repression", "ethics", "cooking", "fathers", "restraint"],
        sample_corpus=(
            "[Style Sample: Ang Lee - Eat Drink Man Woman / Lust, Caution]\n"
            "THEME: Repressed emotion, family duty vs personal desire, food as metaphor.\n"
            "VISUAL: Static mid-shots of dining tables. Close-ups on hands preparing food.\n"
            "DIALOGUE: Characters speak about daily trivialities (soup, mahjong) to avoid "
            "talking about their real pain.\n"
            "SUBTEXT: \"I cook for you\" means \"I love you but I can't say it\"."
        ),
    ),
    DirectorProfile(
        id=DirectorStyle.WONG_KAR_WAI,
        name="Wong Kar-wai",
        description="Time and memory reshaped. Monologue, handheld drift, expired tins of pineapple.",
        keywords=["monologue", "time", "regret", "step-printing", "neon"],
        sample_corpus=(
            "[Style Sample: Wong Kar-wai - Chungking Express / In the Mood for Love]\n"
            "THEME: Time, expiration dates, loneliness, missed connections.\n"
            "VISUAL: Step-printing (slow shutter), neon lights, reflections in wet streets, "
            "claustrophobic framing.\n"
            "DIALOGUE: Heavy use of Voice Over (Monologue). Characters talk to objects "
            "(soap, towels). Obsession with specific numbers and dates."
        ),
    ),
    DirectorProfile(
        id=DirectorStyle.EDWARD_YANG,
        name="Edward Yang",
        description="A cool dissection of the city. Wide shots, middle-class impasse, social observation.",
        keywords=["wide shots", "detachment", "city", "estrangement", "glass reflections"],
        sample_corpus=(
            "[Style Sample: Edward Yang - Yi Yi / A Brighter Summer Day]\n"
            "THEME: Urban alienation, the complexity of modern life, the loss of innocence.\n"
            "VISUAL: Long shots through glass/windows (distancing effect). High angles "
            "looking down on city streets.\n"
            "DIALOGUE: Philosophical, detached, intellectual. Characters often lecture or "
            "question the meaning of life."
        ),
    ),
    DirectorProfile(
        id=DirectorStyle.STEPHEN_CHOW,
        name="Stephen Chow",
        description="Laughing until it hurts. Small people, nonsense deconstruction, exaggeration.",
        keywords=["mo lei tau", "underdogs", "deconstruction", "salted fish", "comeback"],
        sample_corpus=(
            "[Style Sample: Stephen Chow - Kung Fu Hustle / Shaolin Soccer]\n"
            "THEME: The underdog's journey, deconstruction of martial arts tropes, finding "
            "dignity in poverty.\n"
            "VISUAL: Cartoon physics in live action. Extreme close-ups on \"ugly\" details "
            "followed by epic wide shots.\n"
            "DIALOGUE: Nonsense (Mo Lei Tau), rapid-fire insults, mixing high-stakes drama "
            "with mundane complaints."
        ),
    ),
    DirectorProfile(
        id=DirectorStyle.CUSTOM,
        name="Custom Corpus",
        description="Paste any screenplay or novel text and its style is learned from that alone.",
        keywords=["custom", "deep imitation", "experimental"],
    ),
]

_BY_ID = {d.id.value: d for d in DIRECTORS}


def get_director(style: str) -> DirectorProfile:
    """Look up a profile by its identifier; raises KeyError for unknown styles."""
    key = style.value if isinstance(style, DirectorStyle) else str(style).upper()
    return _BY_ID[key]
