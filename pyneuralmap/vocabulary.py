"""Controlled vocabularies and tag classification for PyNeuralMap.

The temporal context vocabulary covers three dimensions (literary era,
historical forces, technological context). Classification is a pure
membership lookup; unknown tags classify as ``None``.
"""

import re
from typing import Dict, Iterable, List, Optional, Tuple

from .types import TagCategory

LITERARY_ERAS: Tuple[str, ...] = (
    "Proto-SF (Pre-1926)",
    "Pulp Era (1926-1938)",
    "Golden Age (1938-1960)",
    "New Wave (1960-1975)",
    "Cyberpunk Era (1980-1995)",
    "Post-Cyberpunk (1995-2010)",
    "Contemporary SF (2010-2020)",
    "Emerging SF (2020+)",
    "Feminist SF Wave (1970s-1980s)",
    "New Space Opera (1990s-2000s)",
    "Hard SF Renaissance (1990s)",
    "Afrofuturism",
    "Biopunk Era (1990s-2000s)",
    "Climate Fiction Era (2010+)",
    "Solarpunk",
    "Weird Fiction Revival (2000s)",
    "New Weird (2000s)",
    "Mundane SF (2000s)",
    "Hopepunk (2010s)",
    "Post-Apocalyptic Wave (2000s)",
)

HISTORICAL_FORCES: Tuple[str, ...] = (
    "World War I Trauma",
    "Interwar Anxiety (1920s-1930s)",
    "World War II Impact",
    "Post-War Optimism (1945-1950s)",
    "Nuclear Age Anxiety",
    "Cold War Tensions",
    "Space Race Optimism",
    "McCarthyism Era",
    "Civil Rights Movement",
    "Counterculture Movement (1960s)",
    "Vietnam War Era",
    "Sexual Revolution (1960s-1970s)",
    "Oil Crisis (1970s)",
    "Reagan Era (1980s)",
    "Fall of Berlin Wall (1989)",
    "Dot-com Bubble (1995-2001)",
    "Post-9/11 Security State",
    "Iraq War Era (2003-2011)",
    "Financial Crisis (2008)",
    "Arab Spring (2011)",
    "Occupy Movement (2011)",
    "Climate Awareness (2010s)",
    "Trump Era (2016-2020)",
    "AI Emergence (2010s-2020s)",
    "Social Media Age",
    "Surveillance Capitalism",
    "Gig Economy Era",
    "COVID-19 Pandemic",
    "Black Lives Matter",
    "MeToo Movement",
    "Climate Crisis Acceleration",
    "New Space Race (2020s)",
    "Ukraine War (2022+)",
    "AI Safety Concerns (2023+)",
    "Polycrisis (2020s)",
)

TECHNOLOGICAL_CONTEXT: Tuple[str, ...] = (
    "Steam Power Era",
    "Electrical Age",
    "Radio Age (1920s-1940s)",
    "Atomic Technology",
    "Early Computers (1940s-1950s)",
    "Television Age (1950s-1960s)",
    "Early Robotics (1950s-1960s)",
    "Cybernetics (1950s-1960s)",
    "Transistor Era (1960s)",
    "Integrated Circuits (1960s-1970s)",
    "Mainframe Era (1960s-1970s)",
    "Genetic Engineering Dawn (1970s)",
    "Microprocessor Age (1970s)",
    "PC Revolution (1980s)",
    "Video Game Era (1980s-1990s)",
    "Biotechnology Era (1980s-1990s)",
    "Neural Networks (1980s-1990s)",
    "Internet Dawn (1990s)",
    "Virtual Reality (1990s)",
    "Cloning Era (1996+)",
    "Human Genome Project (1990-2003)",
    "Nanotechnology (1990s-2000s)",
    "Mobile Computing (2000s)",
    "Social Networks (2000s)",
    "Cloud Era (2010s)",
    "Big Data (2010s)",
    "Autonomous Vehicles (2010s)",
    "Drone Technology (2010s)",
    "CRISPR Era (2012+)",
    "Deep Learning (2012+)",
    "Blockchain Era (2014+)",
    "Quantum Computing (2010s-2020s)",
    "5G Networks (2019+)",
    "mRNA Vaccines (2020+)",
    "Brain-Computer Interfaces (2020s)",
    "Generative AI (2022+)",
    "Large Language Models (2023+)",
    "Autonomous Systems (2020s)",
    "Synthetic Biology (2020s)",
    "AGI Speculation (2020s)",
)

TEMPORAL_CONTEXT_TAGS: Dict[TagCategory, Tuple[str, ...]] = {
    TagCategory.LITERARY_ERA: LITERARY_ERAS,
    TagCategory.HISTORICAL_FORCES: HISTORICAL_FORCES,
    TagCategory.TECHNOLOGICAL_CONTEXT: TECHNOLOGICAL_CONTEXT,
}

# Official conceptual tags used for pattern recognition and display
CONCEPTUAL_TAGS: Tuple[str, ...] = (
    # Sci-Fi genres & movements
    "Cyberpunk",
    "Post-Cyberpunk",
    "Space Opera",
    "Hard Science Fiction",
    "Biopunk",
    "Golden Age",
    # Temporal themes
    "Block Universe Compatible",
    "Time Dilation",
    "Chrono Loops",
    "Technological Shamanism",
    # World structures
    "Utopian Collapse",
    "Mega-Corporate Systems",
    "Off-Earth Civilisations",
    "Dystopian Systems",
    # Narrative form
    "Nonlinear Structure",
    "Dream Logic",
    "Archive-Based",
    "Memory Distortion",
    # Sci-Fi elements
    "Cybernetic Enhancement",
    "Quantum Consciousness",
    "Neural Interface",
    "Posthuman Evolution",
)

UNKNOWN_AUTHOR = "Unknown Author"

_CATEGORY_LOOKUP: Dict[str, TagCategory] = {
    tag: category
    for category, tags in TEMPORAL_CONTEXT_TAGS.items()
    for tag in tags
}
_ERA_POSITIONS: Dict[str, int] = {era: i for i, era in enumerate(LITERARY_ERAS)}
_CONCEPTUAL_LOOKUP = frozenset(CONCEPTUAL_TAGS)

# Loose match for era-like context tags (legacy tags predate the vocabulary)
ERA_PATTERN = re.compile(r"Era|Age|Period|Classic|Golden|New Wave|Cyber|Post-")


def classify_tag(tag: str) -> Optional[TagCategory]:
    """Classify a controlled-vocabulary tag into its taxonomic bucket.

    Args:
        tag: Tag string to classify

    Returns:
        The tag's category, or None for tags outside the vocabulary
    """
    if not isinstance(tag, str):
        return None
    return _CATEGORY_LOOKUP.get(tag)


def is_literary_era(tag: str) -> bool:
    return classify_tag(tag) is TagCategory.LITERARY_ERA


def era_rank(era: str) -> int:
    """Position of an era in the canonical era sequence.

    Unknown eras sort after every known era.
    """
    return _ERA_POSITIONS.get(era, len(LITERARY_ERAS))


def is_era_like(tag: str) -> bool:
    """Whether a context tag looks like an era label."""
    return bool(tag) and ERA_PATTERN.search(tag) is not None


def filter_conceptual_tags(tags: Iterable[str]) -> List[str]:
    """Keep only official conceptual tags."""
    if not tags or isinstance(tags, str):
        return []
    return [tag for tag in tags if tag in _CONCEPTUAL_LOOKUP]


def literary_eras_of(tags: Iterable[str]) -> List[str]:
    """Literary-era tags among ``tags``, in their original order."""
    return [tag for tag in tags if is_literary_era(tag)]


def resolve_literary_era(tags: Iterable[str]) -> Optional[str]:
    """First literary-era tag among ``tags``, if any."""
    for tag in tags:
        if is_literary_era(tag):
            return tag
    return None
