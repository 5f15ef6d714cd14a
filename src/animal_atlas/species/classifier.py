"""Name and taxonomy heuristics used to gate sources and filter results.

Everything here is a pure function over strings, so the tables can be
exercised exhaustively without network access.
"""

import re
from enum import Enum

from animal_atlas.species.models import AnimalRecord, Taxonomy

# Substrings that only occur in plant or fungus names. Generic words such as
# "tree", "grass" or "flower" are excluded: tree frog, grasshopper and
# flowerpecker are animals.
PLANT_KEYWORDS = (
    "beggarticks",
    "dandelion",
    "goldenrod",
    "ragweed",
    "mushroom",
    "lichen",
    "seaweed",
    "wort",
    "daisy",
    "thistle",
    "fescue",
    "bluegrass",
    "ryegrass",
    "sagebrush",
    "marigold",
    "buttercup",
    "knotweed",
    "horsetail",
)

PLANT_CLASSES = frozenset(
    {
        "magnoliopsida",
        "liliopsida",
        "pinopsida",
        "polypodiopsida",
        "bryopsida",
        "lycopodiopsida",
        "gnetopsida",
        "cycadopsida",
        "ginkgoopsida",
        "equisetopsida",
        "marchantiopsida",
        "sphagnopsida",
        "charophyceae",
        "ulvophyceae",
        "florideophyceae",
        "agaricomycetes",
        "lecanoromycetes",
    }
)

PLANT_FAMILIES = frozenset(
    {
        "asteraceae",
        "poaceae",
        "fabaceae",
        "rosaceae",
        "orchidaceae",
        "lamiaceae",
        "brassicaceae",
        "apiaceae",
        "solanaceae",
        "cyperaceae",
        "ericaceae",
        "euphorbiaceae",
        "rubiaceae",
        "malvaceae",
        "pinaceae",
        "fagaceae",
        "cactaceae",
        "liliaceae",
        "ranunculaceae",
        "myrtaceae",
        "polygonaceae",
    }
)

ANIMAL_CLASSES = frozenset(
    {
        "mammalia",
        "aves",
        "reptilia",
        "amphibia",
        "actinopterygii",
        "chondrichthyes",
        "elasmobranchii",
        "sarcopterygii",
        "dipnoi",
        "myxini",
        "petromyzonti",
        "insecta",
        "arachnida",
        "chilopoda",
        "diplopoda",
        "collembola",
        "malacostraca",
        "branchiopoda",
        "maxillopoda",
        "hexanauplia",
        "thecostraca",
        "merostomata",
        "gastropoda",
        "bivalvia",
        "cephalopoda",
        "polyplacophora",
        "anthozoa",
        "scyphozoa",
        "hydrozoa",
        "cubozoa",
        "asteroidea",
        "echinoidea",
        "holothuroidea",
        "ophiuroidea",
        "crinoidea",
        "polychaeta",
        "clitellata",
        "demospongiae",
        "ascidiacea",
    }
)


def is_animal(record: AnimalRecord) -> bool:
    """Decide whether a record describes an animal rather than a plant or fungus.

    Rules apply in a fixed order and the first one that decides wins: plant
    kingdom, plant keyword in either name, plant class, plant family, then
    animal class (an empty class is accepted only under an animal kingdom).

    Args:
        record: Candidate record

    Returns:
        True if the record should be kept
    """
    taxonomy = record.taxonomy or Taxonomy()
    kingdom = taxonomy.kingdom.strip().lower()
    class_name = taxonomy.class_.strip().lower()
    family = taxonomy.family.strip().lower()
    name = record.name.lower()
    scientific_name = taxonomy.scientific_name.lower()

    if "plant" in kingdom:
        return False
    if any(keyword in name or keyword in scientific_name for keyword in PLANT_KEYWORDS):
        return False
    if class_name in PLANT_CLASSES:
        return False
    if family in PLANT_FAMILIES:
        return False
    if kingdom in ("animalia", "") or "animal" in kingdom:
        return class_name in ANIMAL_CLASSES or class_name == ""
    return class_name in ANIMAL_CLASSES


class AnimalType(str, Enum):
    """Coarse animal type used to gate breed-specific photo sources."""

    DOG = "dog"
    CAT = "cat"
    BIRD = "bird"
    FISH = "fish"
    GENERAL = "general"


DOG_WORDS = frozenset(
    {
        "dog",
        "dogs",
        "puppy",
        "puppies",
        "canine",
        "hound",
        "terrier",
        "retriever",
        "poodle",
        "spaniel",
        "labrador",
        "bulldog",
        "beagle",
        "dachshund",
        "husky",
        "chihuahua",
        "rottweiler",
        "corgi",
    }
)

# Wild or unrelated animals whose common name contains a dog word
DOG_LOOKALIKES = (
    "prairie dog",
    "wild dog",
    "raccoon dog",
    "bush dog",
    "sea dog",
    "water dog",
)

CAT_WORDS = frozenset({"cat", "cats", "kitten", "kittens", "kitty", "feline", "tabby"})

# Wild cats and non-felids; domestic-cat photos would misrepresent them
CAT_LOOKALIKES = (
    "wild cat",
    "sand cat",
    "jungle cat",
    "fishing cat",
    "civet cat",
    "ring-tailed cat",
    "ringtail cat",
    "marbled cat",
    "leopard cat",
    "golden cat",
    "flat-headed cat",
    "rusty-spotted cat",
    "pallas's cat",
    "black-footed cat",
    "sea cat",
    "native cat",
)

BIRD_KEYWORDS = (
    "bird",
    "eagle",
    "hawk",
    "owl",
    "crow",
    "raven",
    "parrot",
    "finch",
    "sparrow",
    "robin",
    "pigeon",
    "dove",
    "duck",
    "goose",
    "swan",
    "heron",
    "crane",
    "pelican",
    "gull",
    "tern",
    "penguin",
    "ostrich",
    "emu",
    "kiwi",
    "woodpecker",
    "hummingbird",
    "kingfisher",
    "toucan",
    "flamingo",
    "stork",
    "ibis",
    "warbler",
    "thrush",
    "wren",
    "jay",
    "magpie",
    "cardinal",
)

MIGRATORY_KEYWORDS = (
    "bird",
    "goose",
    "crane",
    "stork",
    "swallow",
    "tern",
    "albatross",
    "swift",
    "warbler",
    "eagle",
    "hawk",
    "falcon",
    "osprey",
    "whale",
    "caribou",
    "reindeer",
    "wildebeest",
    "elk",
    "salmon",
    "eel",
    "sea turtle",
    "butterfly",
    "monarch",
    "bat",
)

GEOGRAPHIC_WORDS = frozenset(
    {
        "african",
        "american",
        "asian",
        "asiatic",
        "european",
        "eurasian",
        "australian",
        "arctic",
        "antarctic",
        "indian",
        "chinese",
        "japanese",
        "siberian",
        "bengal",
        "north",
        "northern",
        "south",
        "southern",
        "east",
        "eastern",
        "west",
        "western",
        "common",
        "greater",
        "lesser",
    }
)

_WORD_SPLIT = re.compile(r"[^a-z']+")


def _tokens(name: str) -> list[str]:
    return [token for token in _WORD_SPLIT.split(name.lower()) if token]


def detect_animal_type(name: str) -> AnimalType:
    """Classify a name into a coarse animal type by whole-word matching.

    Args:
        name: Common name, e.g. "Golden Retriever"

    Returns:
        AnimalType, GENERAL when nothing specific matches
    """
    lowered = name.lower()
    tokens = set(_tokens(name))

    if tokens & DOG_WORDS and not any(phrase in lowered for phrase in DOG_LOOKALIKES):
        return AnimalType.DOG
    if tokens & CAT_WORDS and not any(phrase in lowered for phrase in CAT_LOOKALIKES):
        return AnimalType.CAT
    if is_likely_bird(name):
        return AnimalType.BIRD
    if any(token == "fish" or token.endswith("fish") for token in tokens):
        return AnimalType.FISH
    return AnimalType.GENERAL


def _matches_keyword(name: str, keywords: tuple[str, ...]) -> bool:
    """Match keywords against whole words of a name.

    A word matches a keyword when it equals it, is its plural, or (for
    keywords of four letters or more) ends with it, so "Bluebird" matches
    "bird" while "Wombat" does not match "bat". Geographic adjectives are
    ignored, so "Eastern" never matches "tern".
    """
    lowered = name.lower()
    tokens = [token for token in _tokens(name) if token not in GEOGRAPHIC_WORDS]
    for keyword in keywords:
        if " " in keyword:
            if keyword in lowered:
                return True
            continue
        for token in tokens:
            if token in (keyword, f"{keyword}s"):
                return True
            if len(keyword) >= 4 and token.endswith(keyword):
                return True
    return False


def is_likely_bird(name: str) -> bool:
    """Keyword heuristic used to decide whether sound recordings are worth fetching."""
    return _matches_keyword(name, BIRD_KEYWORDS)


def is_migratory(name: str) -> bool:
    """Keyword heuristic used to decide whether to look up migration tracks."""
    return _matches_keyword(name, MIGRATORY_KEYWORDS)


def build_image_queries(name: str, scientific_name: str | None = None) -> list[str]:
    """Build 2-4 distinct search variants for image lookups, most specific first.

    Variants, in order: the full name; the scientific name reduced to genus and
    species; the name without generic geographic adjectives; the last word of
    the name.

    Args:
        name: Common name
        scientific_name: Scientific name when known

    Returns:
        Distinct query strings, compared case-insensitively
    """
    candidates = [name.strip()]

    if scientific_name:
        parts = scientific_name.split()
        candidates.append(" ".join(parts[:2]) if len(parts) > 2 else scientific_name.strip())

    words = name.split()
    stripped = [word for word in words if word.lower().strip(",.") not in GEOGRAPHIC_WORDS]
    if stripped:
        candidates.append(" ".join(stripped))
    if words:
        candidates.append(words[-1])

    queries: list[str] = []
    seen: set[str] = set()
    for candidate in candidates:
        key = candidate.lower()
        if candidate and key not in seen:
            seen.add(key)
            queries.append(candidate)
    return queries[:4]


def slugify(name: str) -> str:
    """Lowercase, hyphen-separated form of a name for identifiers."""
    return "-".join(_tokens(name.replace("'", ""))) or "animal"
