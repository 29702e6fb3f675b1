"""Closed theme vocabulary for pitches.

Themes are coarse filters; the complementary map drives the collaboration
potential bonus (symmetric pairs are listed from both sides).
"""

THEMES = [
    {"value": "sport", "label": "Sport"},
    {"value": "culture", "label": "Culture"},
    {"value": "education", "label": "Education"},
    {"value": "family", "label": "Family"},
    {"value": "professional", "label": "Professional"},
    {"value": "leisure", "label": "Leisure"},
    {"value": "travel", "label": "Travel"},
    {"value": "cooking", "label": "Cooking"},
    {"value": "technology", "label": "Technology"},
    {"value": "health", "label": "Health"},
    {"value": "other", "label": "Other"},
]

COMPLEMENTARY_THEMES = {
    "technology": ["education", "health", "professional"],
    "education": ["technology", "culture"],
    "health": ["technology", "sport"],
    "professional": ["technology", "education"],
}
