"""Stop words ignored by the lexical keyword extractor.

Pitches are recorded in French and English, so both lists are merged.
Only tokens of four characters or more reach this filter.
"""

FRENCH_STOP_WORDS = {
    "alors", "aller", "après", "aussi", "autre", "autres", "avant", "avec",
    "avoir", "beaucoup", "bien", "cela", "celle", "celui", "cette", "chez",
    "comme", "comment", "dans", "depuis", "devoir", "donc", "dont", "elle",
    "elles", "encore", "entre", "était", "étaient", "être", "faire", "fait",
    "jamais", "leur", "leurs", "mais", "même", "moins", "notre", "nous",
    "parce", "pendant", "peut", "plus", "pour", "pouvoir", "quand", "quel",
    "quelle", "quelque", "quoi", "sans", "savoir", "sera", "seront", "sont",
    "sous", "tous", "tout", "toute", "toutes", "toujours", "très", "venir",
    "vers", "voir", "votre", "vouloir", "vous", "déjà", "ainsi", "aujourd",
    "voici", "voilà",
}

ENGLISH_STOP_WORDS = {
    "about", "above", "after", "again", "also", "been", "before", "being",
    "below", "between", "both", "could", "does", "doing", "down", "during",
    "each", "even", "every", "from", "further", "have", "having", "here",
    "into", "just", "like", "more", "most", "much", "only", "other", "over",
    "same", "should", "some", "such", "than", "that", "their", "theirs",
    "them", "then", "there", "these", "they", "this", "those", "through",
    "under", "until", "very", "want", "were", "what", "when", "where",
    "which", "while", "will", "with", "would", "your", "yours", "really",
    "thing", "things", "going",
}

STOP_WORDS = frozenset(FRENCH_STOP_WORDS | ENGLISH_STOP_WORDS)
