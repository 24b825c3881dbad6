"""Option tables and random pickers for synthesizing characters.

Every picker takes an explicit ``random.Random`` so each job draws from its
own generator and never inherits another job's random state.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Any

GENDERS = ("male", "female", "non-binary")


@dataclass(frozen=True)
class ProfileType:
    description: str
    occupations: tuple[str, ...]
    interests: tuple[str, ...]
    traits: tuple[str, ...]
    fashion_styles: tuple[str, ...]
    scenes: tuple[str, ...] = field(default_factory=tuple)


PROFILE_TYPES: dict[str, ProfileType] = {
    "influencer": ProfileType(
        description="Social media influencer with a curated lifestyle",
        occupations=("Content Creator", "Social Media Influencer", "Brand Ambassador", "Lifestyle Blogger"),
        interests=("fashion", "beauty", "travel", "photography", "social media", "networking"),
        traits=("charismatic", "trendy", "outgoing", "creative", "ambitious"),
        fashion_styles=("trendy", "glamorous", "casual chic", "streetwear"),
        scenes=(
            "taking a mirror selfie in a trendy cafe",
            "posing in front of colorful street art mural",
            "sitting at a rooftop bar with city skyline view",
            "casual pose in a cozy home setting with plants",
            "outdoor golden hour photoshoot in urban setting",
            "walking down a fashion district street",
            "sitting at a beach club with ocean view",
        ),
    ),
    "gamer": ProfileType(
        description="Professional or enthusiast gamer",
        occupations=("Esports Pro", "Streamer", "Game Developer", "Gaming Content Creator"),
        interests=("video games", "technology", "anime", "streaming", "competitive gaming"),
        traits=("competitive", "focused", "tech-savvy", "witty", "dedicated"),
        fashion_styles=("casual", "streetwear", "gamer aesthetic", "comfortable"),
        scenes=(
            "sitting at a high-end gaming setup with RGB lighting",
            "wearing headphones with gaming gear visible",
            "casual pose with gaming controller",
            "at a gaming convention or esports event",
            "relaxed pose in a modern gaming room",
            "streaming setup with microphone and webcam visible",
        ),
    ),
    "yoga_instructor": ProfileType(
        description="Wellness and mindfulness practitioner",
        occupations=("Yoga Instructor", "Wellness Coach", "Meditation Guide", "Holistic Therapist"),
        interests=("yoga", "meditation", "wellness", "nature", "healthy eating", "mindfulness"),
        traits=("calm", "peaceful", "nurturing", "spiritual", "patient"),
        fashion_styles=("athleisure", "bohemian", "natural", "comfortable"),
        scenes=(
            "peaceful meditation pose in natural setting",
            "standing in a serene yoga studio",
            "outdoor yoga pose at sunrise or sunset",
            "relaxed pose in a wellness retreat setting",
            "teaching position in a bright studio",
            "sitting peacefully in a zen garden",
        ),
    ),
    "tech": ProfileType(
        description="Technology enthusiast or professional",
        occupations=("Software Engineer", "Tech Entrepreneur", "AI Researcher", "Product Manager"),
        interests=("technology", "AI", "startups", "coding", "innovation", "gadgets"),
        traits=("analytical", "innovative", "curious", "logical", "ambitious"),
        fashion_styles=("smart casual", "minimalist", "tech-forward", "professional"),
        scenes=(
            "in a modern tech office with computers",
            "casual pose at a startup workspace",
            "speaking at a tech conference podium",
            "working on a laptop in a minimalist setting",
            "standing in a server room or data center",
            "brainstorming at a whiteboard",
        ),
    ),
    "billionaire": ProfileType(
        description="Wealthy entrepreneur or business magnate",
        occupations=("CEO", "Investor", "Entrepreneur", "Business Mogul", "Venture Capitalist"),
        interests=("business", "investing", "luxury", "travel", "philanthropy", "art collecting"),
        traits=("confident", "decisive", "ambitious", "sophisticated", "strategic"),
        fashion_styles=("luxury", "elegant", "designer", "classic"),
        scenes=(
            "in a luxury penthouse with city views",
            "sitting in a private jet cabin",
            "walking through a high-end gallery",
            "at a luxury yacht deck",
            "in a designer office with art pieces",
            "at an exclusive gala event",
        ),
    ),
    "philosopher": ProfileType(
        description="Deep thinker and intellectual",
        occupations=("Professor", "Author", "Philosopher", "Thought Leader", "Academic"),
        interests=("philosophy", "reading", "writing", "debate", "history", "ethics"),
        traits=("thoughtful", "intellectual", "curious", "wise", "articulate"),
        fashion_styles=("classic", "academic", "sophisticated", "minimalist"),
        scenes=(
            "in a classic library surrounded by books",
            "thoughtful pose at a wooden desk",
            "walking through a historic university campus",
            "in a cozy study with fireplace",
            "giving a lecture at a university",
            "contemplative pose in a garden",
        ),
    ),
    "fitness": ProfileType(
        description="Fitness enthusiast or professional",
        occupations=("Personal Trainer", "Fitness Coach", "Athlete", "Gym Owner"),
        interests=("fitness", "nutrition", "sports", "health", "outdoor activities"),
        traits=("disciplined", "energetic", "motivating", "determined", "positive"),
        fashion_styles=("athletic", "sporty", "activewear", "casual"),
        scenes=(
            "at a modern gym with equipment",
            "outdoor running or jogging scene",
            "stretching before workout",
            "confident pose showing athletic physique",
            "at a sports facility",
            "post-workout with water bottle",
        ),
    ),
    "artist": ProfileType(
        description="Creative artist or designer",
        occupations=("Artist", "Graphic Designer", "Photographer", "Illustrator", "Creative Director"),
        interests=("art", "design", "creativity", "museums", "culture", "expression"),
        traits=("creative", "expressive", "unique", "passionate", "intuitive"),
        fashion_styles=("artistic", "eclectic", "avant-garde", "expressive"),
        scenes=(
            "in an art studio with canvases",
            "holding paintbrushes with colorful background",
            "at an art gallery opening",
            "creative workspace with art supplies",
            "standing in front of their artwork",
            "working on a creative project",
        ),
    ),
    "musician": ProfileType(
        description="Music professional or enthusiast",
        occupations=("Singer", "Musician", "Producer", "DJ", "Composer"),
        interests=("music", "concerts", "instruments", "songwriting", "performance"),
        traits=("passionate", "creative", "emotional", "talented", "expressive"),
        fashion_styles=("edgy", "rockstar", "artistic", "unique"),
        scenes=(
            "on stage with musical instruments",
            "in a recording studio",
            "casual pose with guitar or instrument",
            "backstage at a concert venue",
            "in a music practice room",
            "performing at an intimate venue",
        ),
    ),
    "chef": ProfileType(
        description="Culinary professional or food enthusiast",
        occupations=("Chef", "Restaurant Owner", "Food Blogger", "Culinary Instructor"),
        interests=("cooking", "food", "restaurants", "travel", "culture", "wine"),
        traits=("creative", "passionate", "detail-oriented", "adventurous", "nurturing"),
        fashion_styles=("chef attire", "casual elegant", "professional", "classic"),
        scenes=(
            "in a professional kitchen",
            "preparing food with beautiful plating",
            "at a restaurant with elegant ambiance",
            "at a farmer's market with fresh ingredients",
            "teaching a cooking class",
            "casual pose in a home kitchen",
        ),
    ),
    "entrepreneur": ProfileType(
        description="Business founder or startup leader",
        occupations=("Founder", "CEO", "Startup Advisor", "Business Coach"),
        interests=("business", "innovation", "networking", "leadership", "growth"),
        traits=("ambitious", "resilient", "innovative", "driven", "visionary"),
        fashion_styles=("professional", "smart casual", "modern", "polished"),
        scenes=(
            "in a modern startup office",
            "speaking at a business conference",
            "casual meeting in a co-working space",
            "standing confidently in front of company logo",
            "working late on laptop with city views",
            "networking at a business event",
        ),
    ),
    "model": ProfileType(
        description="Fashion or commercial model",
        occupations=("Fashion Model", "Commercial Model", "Brand Ambassador", "Influencer"),
        interests=("fashion", "photography", "travel", "fitness", "beauty"),
        traits=("confident", "photogenic", "charismatic", "professional", "stylish"),
        fashion_styles=("high fashion", "trendy", "elegant", "versatile"),
        scenes=(
            "professional fashion photoshoot",
            "runway-style pose in designer clothing",
            "editorial style portrait",
            "casual street style photography",
            "elegant evening wear photoshoot",
            "natural beauty outdoor shoot",
        ),
    ),
    "scientist": ProfileType(
        description="Research scientist or academic",
        occupations=("Researcher", "Scientist", "Professor", "Lab Director"),
        interests=("science", "research", "discovery", "innovation", "education"),
        traits=("analytical", "curious", "methodical", "intelligent", "dedicated"),
        fashion_styles=("professional", "smart casual", "practical", "classic"),
        scenes=(
            "in a laboratory with equipment",
            "at a research presentation",
            "working with scientific instruments",
            "at a university campus",
            "casual pose in an office with books",
            "teaching or mentoring students",
        ),
    ),
    "traveler": ProfileType(
        description="Travel content creator or adventurer",
        occupations=("Travel Blogger", "Photographer", "Adventure Guide", "Digital Nomad"),
        interests=("travel", "adventure", "photography", "cultures", "nature"),
        traits=("adventurous", "curious", "open-minded", "spontaneous", "storyteller"),
        fashion_styles=("travel-ready", "casual", "practical", "bohemian"),
        scenes=(
            "at an exotic travel destination",
            "standing at a scenic viewpoint",
            "exploring a historic city center",
            "at an airport with luggage",
            "adventure activity like hiking or diving",
            "at a beautiful beach or mountain",
        ),
    ),
    "wellness": ProfileType(
        description="Wellness and self-care advocate",
        occupations=("Life Coach", "Wellness Influencer", "Therapist", "Spa Owner"),
        interests=("wellness", "self-care", "mental health", "nutrition", "relaxation"),
        traits=("caring", "empathetic", "balanced", "positive", "supportive"),
        fashion_styles=("comfortable", "natural", "soft", "elegant casual"),
        scenes=(
            "in a peaceful spa setting",
            "surrounded by plants and natural elements",
            "practicing self-care rituals",
            "at a wellness retreat",
            "calm pose in a meditation space",
            "in a bright, positive environment",
        ),
    ),
}

_BY_GENDER_ETHNICITIES = {
    "male": ("Caucasian", "Asian", "African", "Hispanic", "Middle Eastern", "South Asian", "Mixed"),
    "female": ("Caucasian", "Asian", "African", "Hispanic/Latina", "Middle Eastern", "South Asian", "Mixed"),
    "non-binary": ("Caucasian", "Asian", "African", "Hispanic", "Middle Eastern", "South Asian", "Mixed"),
}
_BY_GENDER_HAIR_LENGTHS = {
    "male": ("short", "medium", "buzz cut", "slicked back"),
    "female": ("pixie", "short", "medium", "long", "very long"),
    "non-binary": ("pixie", "short", "medium", "long"),
}
_BY_GENDER_HAIR_STYLES = {
    "male": ("straight", "wavy", "curly", "buzz cut", "slicked back", "messy"),
    "female": ("straight", "wavy", "curly", "braided", "ponytail", "bun", "bob"),
    "non-binary": ("straight", "wavy", "curly", "bob", "undercut", "natural"),
}
_BY_GENDER_BODY_TYPES = {
    "male": ("athletic", "slim", "muscular", "average", "tall and lean"),
    "female": ("slim", "athletic", "curvy", "petite", "average"),
    "non-binary": ("slim", "athletic", "average", "petite", "lean"),
}

AGES = ("early 20s", "mid 20s", "late 20s", "early 30s", "mid 30s", "late 30s")
FACE_SHAPES = ("oval", "round", "heart", "square", "oblong", "diamond")
EYE_COLORS = ("brown", "blue", "green", "hazel", "gray", "amber", "black")
EYE_SHAPES = ("almond", "round", "hooded", "monolid", "upturned")
SKIN_TONES = ("porcelain", "fair", "light", "medium", "olive", "tan", "brown", "dark")
HAIR_COLORS = ("blonde", "brunette", "black", "red", "auburn", "gray", "platinum")
HAIR_TEXTURES = ("straight", "wavy", "curly", "coily")
HEIGHTS = ("tall", "average", "petite")
DISTINCTIVE_FEATURES = ("dimples", "freckles", "beauty mark", "strong jawline", "high cheekbones")
MAKEUP_STYLES = ("natural", "glamorous", "minimal", "soft glam")
LIGHTING = ("natural lighting", "golden hour", "soft studio lighting", "dramatic lighting")


def profile_type(name: str) -> ProfileType:
    """Look up a profile type, falling back to ``influencer``."""
    return PROFILE_TYPES.get(name, PROFILE_TYPES["influencer"])


def normalize_gender(gender: str) -> str:
    gender = gender.strip().lower().replace("_", "-")
    if gender in ("nonbinary", "non binary"):
        gender = "non-binary"
    return gender if gender in GENDERS else "female"


def weighted_gender(distribution: dict[str, int], rng: random.Random) -> str:
    """Pick a gender from percentage weights (``male``/``female``/``non_binary``)."""
    roll = rng.random() * 100
    male = distribution.get("male", 0)
    female = distribution.get("female", 0)
    if roll < male:
        return "male"
    if roll < male + female:
        return "female"
    return "non-binary"


def pick_profile_type(types: list[str], rng: random.Random) -> str:
    return rng.choice(types) if types else "influencer"


def random_physical_attributes(gender: str, kind: str, rng: random.Random) -> dict[str, Any]:
    """Locally drawn appearance for a new character."""
    gender = normalize_gender(gender)
    info = profile_type(kind)
    return {
        "gender": gender,
        "age": rng.choice(AGES),
        "ethnicity": rng.choice(_BY_GENDER_ETHNICITIES[gender]),
        "face_shape": rng.choice(FACE_SHAPES),
        "eye_color": rng.choice(EYE_COLORS),
        "eye_shape": rng.choice(EYE_SHAPES),
        "nose_type": "straight",
        "lip_shape": "full",
        "skin_tone": rng.choice(SKIN_TONES),
        "hair_color": rng.choice(HAIR_COLORS),
        "hair_length": rng.choice(_BY_GENDER_HAIR_LENGTHS[gender]),
        "hair_style": rng.choice(_BY_GENDER_HAIR_STYLES[gender]),
        "hair_texture": rng.choice(HAIR_TEXTURES),
        "body_type": rng.choice(_BY_GENDER_BODY_TYPES[gender]),
        "height": rng.choice(HEIGHTS),
        "distinctive_features": rng.sample(DISTINCTIVE_FEATURES, rng.randint(1, 2)),
        "fashion_style": rng.choice(info.fashion_styles),
        "makeup": rng.choice(MAKEUP_STYLES) if gender == "female" else "none",
    }


def scene_prompts(kind: str, count: int, rng: random.Random) -> list[str]:
    """``count`` scene descriptions for a profile type, distinct while they last."""
    scenes = list(profile_type(kind).scenes)
    picked: list[str] = []
    while len(picked) < count:
        batch = scenes[:]
        rng.shuffle(batch)
        picked.extend(batch[: count - len(picked)])
    return [
        f"{scene}, {rng.choice(LIGHTING)}, professional photography, high quality"
        for scene in picked
    ]


def character_tags(kind: str, gender: str, attributes: dict[str, Any], traits: list[str]) -> list[str]:
    tags = [
        kind.replace("_", " "),
        gender,
        attributes.get("ethnicity", ""),
        attributes.get("hair_color", ""),
        *traits[:3],
    ]
    return [t for t in tags if t]
