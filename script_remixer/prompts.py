"""Prompt builders for the four generation tasks.

Every builder is a pure function of its inputs. The wording is English
throughout; ``language`` only selects the language the model must answer in.
"""

from .models.script_state import Chapter, Character

LANGUAGE_NAMES = {
    "zh": "Simplified Chinese",
    "en": "English",
}

STYLE_REPORT_HEADERS = {
    "zh": "【风格基因提取报告】",
    "en": "[STYLE DNA REPORT]",
}

NO_CHARACTERS = "No specific character profiles provided. Infer from outline."

BLUEPRINT_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "feasibilityReport": {
            "type": "STRING",
            "description": "Strategy for adapting the story to the style.",
        },
        "sequences": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "title": {"type": "STRING"},
                    "summary": {"type": "STRING", "description": "Detailed visual beat sheet."},
                },
                "required": ["title", "summary"],
            },
        },
    },
    "required": ["feasibilityReport", "sequences"],
}


def _language_name(language: str) -> str:
    return LANGUAGE_NAMES.get(language, LANGUAGE_NAMES["en"])


def format_characters(characters: list[Character]) -> str:
    if not characters:
        return NO_CHARACTERS
    return "\n".join(
        f"- NAME: {c.name} ({c.archetype})\n  TRAITS: {c.description}" for c in characters
    )


def build_style_prompt(reference_material: str, language: str) -> str:
    header = STYLE_REPORT_HEADERS.get(language, STYLE_REPORT_HEADERS["en"])
    return f"""ROLE: You are an expert Film Theorist and Stylistic Analyst.

TASK:
Deeply read the provided "Screenplay Corpus" and extract the ABSTRACT DIRECTING PRINCIPLES (Style DNA).

CRITICAL INSTRUCTION FOR STYLE TRANSFER:
Separate CONTENT (WHAT is happening, e.g. cooking, kung fu, the 1960s) from FORM (HOW it is shown,
e.g. static shots, rapid cuts, silence, repression). This director's FORM will be applied to
completely different genres.

PROHIBITED: Do not list specific props or settings ("he likes qipaos", "he likes cooking scenes").
REQUIRED: Extract the FUNCTION of the scene ("complex physical rituals mask repressed emotional tension").

ANALYSIS TARGETS:
1. The Mechanism of Subtext: how do characters avoid saying what they mean?
2. Visual Grammar: static vs handheld, wide vs close, depth of field, framing.
3. Pacing & Rhythm: the heartbeat of the scene.
4. Thematic Abstractions: e.g. "Ritual vs Chaos", not "Food vs Hunger".

CORPUS:
{reference_material}

OUTPUT:
Return a concise Style DNA Report.
Language: {_language_name(language)}.
Start with: "{header}"
"""


def build_blueprint_prompt(
    style_dna: str, outline: str, characters: list[Character], language: str
) -> str:
    return f"""ROLE: You are "Script-Remixer", an elite script doctor specializing in GENRE MASHUPS.

TASK:
1. Analyze the user's Raw Outline (content) against the Style DNA (form).
2. Create a Feasibility & Adaptation Strategy.

THE GOLDEN RULE: STRUCTURAL EQUIVALENCE MAPPING
The user's outline determines the SUBJECT (WHAT). The Style DNA determines the LENS (HOW).

STRICT PROHIBITION: Do NOT force the director's specific props into the user's world.
- Ang Lee + Cyberpunk: do NOT make a cyborg cook food.
- Wong Kar-wai + Zombie Apocalypse: do NOT put a zombie in a qipao.

REQUIREMENT: Find the FUNCTIONAL EQUIVALENT in the user's world.
- Ang Lee's cooking (ritual) -> cyberpunk maintenance and repair (ritual).
- Wong Kar-wai's expiration dates (time anxiety) -> a zombie's rotting flesh (time anxiety).

INPUT DATA:
[STYLE DNA (THE LENS)]:
{style_dna}

[CHARACTER GRAVITY PROFILES]:
{format_characters(characters)}

[USER'S RAW OUTLINE (THE SUBJECT)]:
{outline}

OUTPUT SCHEMA (JSON):
Return an object with:
- "feasibilityReport": a markdown string explaining the genre-bending strategy: which elements of
  the outline are treated with which techniques from the style.
- "sequences": an array of objects {{"title": string, "summary": string}}. Each summary describes
  the VISUALS and SUBTEXT of the scene using the mashup logic.
Write all string values in {_language_name(language)}.
"""


def build_story_context(chapters: list[Chapter], index: int) -> str:
    """Concatenate every chapter strictly before ``index`` in list order."""
    return "\n\n".join(
        f"[SEQUENCE {c.id}: {c.title}]\n{c.content}" for c in chapters[:index]
    )


def build_scene_prompt(
    index: int,
    chapters: list[Chapter],
    style_dna: str,
    outline: str,
    characters: list[Character],
    language: str,
    min_chars: int = 3000,
    max_chars: int = 4000,
) -> str:
    current = chapters[index]
    unit = "Chinese characters" if language == "zh" else "characters"
    return f"""TASK: Write the FULL script content for SEQUENCE {current.id}: "{current.title}".

CORE DIRECTIVE: SEPARATION OF SUBJECT & LENS
You are a director shooting the USER'S GENRE (subject) through the DIRECTOR'S LENS (style).

RULES OF ENGAGEMENT:
1. FOCUS SHIFT (micro-emotion)
   - Do not dwell on the plot event (the bomb exploding).
   - Dwell on the human reaction (the trembling hand on the tea cup before the explosion).
2. SPATIAL GROUNDING (life traces)
   - Even in high-concept sci-fi or fantasy settings, find the flaws.
   - NO pristine holograms. YES to mold in the corner, cigarette butts on the spaceship floor,
     a half-eaten bowl of noodles next to the quantum computer.
   - The world must feel lived in and weary.
3. DIALOGUE RE-CODING (subtext only)
   - Characters must NEVER state what they feel.
   - Use object correlatives: talk about an object (a broken umbrella, a stale tin of pineapple)
     to carry the feeling.
   - Instead of "I love you": "I bought extra noodles."
   - Instead of "I'm scared of dying": "This rain never stops."

DATA:
[STYLE DNA]:
{style_dna}

[CHARACTER PROFILES]:
{format_characters(characters)}

[FULL STORY OUTLINE]:
{outline}

[STORY SO FAR]:
{build_story_context(chapters, index)}

[CURRENT SEQUENCE BLUEPRINT]:
{current.summary}

ACTION:
Write the screenplay for this sequence now.
Format: standard screenplay (scene headings, action, dialogue).
Length: {min_chars}-{max_chars} {unit}. Be extremely detailed in visual description.
Language: {_language_name(language)}.
"""


def build_refine_prompt(
    content: str,
    instruction: str,
    style_dna: str,
    characters: list[Character],
    language: str,
) -> str:
    return f"""ROLE: You are the AI Assistant Director.

TASK: Rewrite the provided script segment according to the DIRECTOR'S NOTE.

[DIRECTOR'S NOTE (USER INSTRUCTION)]:
"{instruction.strip()}"

[STYLE DNA]:
{style_dna}

[CHARACTERS]:
{format_characters(characters)}

[CURRENT SCRIPT]:
{content}

ACTION:
Rewrite the script. Improve it. Apply the note strictly.
Keep the screenplay format.
Language: {_language_name(language)}.
"""
