"""Seed vocabulary, word groups and the static activity catalog."""
from hellenika.models.activity_models import StudyActivity
from hellenika.models.models import ActivityType

STUDY_ACTIVITIES = (
    StudyActivity(
        id="flashcard",
        name="Flashcards",
        description="Practice vocabulary with classic flashcard review",
        type=ActivityType.FLASHCARD,
    ),
    StudyActivity(
        id="quiz",
        name="Multiple Choice",
        description="Test your knowledge with multiple choice questions",
        type=ActivityType.QUIZ,
    ),
    StudyActivity(
        id="typing",
        name="Typing Practice",
        description="Type the Greek word from its English meaning",
        type=ActivityType.TYPING,
    ),
)

# (id, name, description)
WORD_GROUPS = (
    ("philosophy", "Philosophy Terms", "Words from Plato and Aristotle"),
    ("common", "Common Words", "Most frequently used vocabulary"),
    ("verbs", "Essential Verbs", "Key verbs for reading texts"),
    ("homer", "Homeric Greek", "Vocabulary from the Iliad and Odyssey"),
)

# (id, greek, transliteration, english, part of speech, correct, wrong, group ids)
WORDS = (
    ("1", "λόγος", "logos", "word, reason, speech", "noun", 12, 2, ("philosophy", "common")),
    ("2", "ψυχή", "psychē", "soul, spirit, life", "noun", 8, 3, ("philosophy",)),
    ("3", "ἀρετή", "aretē", "virtue, excellence", "noun", 15, 1, ("philosophy",)),
    ("4", "σοφία", "sophia", "wisdom", "noun", 20, 0, ("philosophy", "common")),
    ("5", "ἀλήθεια", "alētheia", "truth", "noun", 7, 4, ("philosophy",)),
    ("6", "εἶναι", "einai", "to be", "verb", 25, 2, ("verbs", "common")),
    ("7", "λέγειν", "legein", "to say, speak", "verb", 18, 3, ("verbs", "common")),
    ("8", "ποιεῖν", "poiein", "to make, do", "verb", 14, 2, ("verbs", "common")),
    ("9", "γιγνώσκειν", "gignōskein", "to know", "verb", 10, 5, ("verbs", "philosophy")),
    ("10", "ἔχειν", "echein", "to have, hold", "verb", 22, 1, ("verbs", "common")),
    ("11", "καλός", "kalos", "beautiful, noble", "adjective", 16, 2, ("common", "philosophy")),
    ("12", "ἀγαθός", "agathos", "good", "adjective", 19, 1, ("common", "philosophy")),
    ("13", "μέγας", "megas", "great, large", "adjective", 12, 3, ("common", "homer")),
    ("14", "πολύς", "polys", "much, many", "adjective", 11, 4, ("common",)),
    ("15", "μῆνις", "mēnis", "wrath, anger", "noun", 5, 2, ("homer",)),
    ("16", "θεός", "theos", "god", "noun", 21, 0, ("common", "homer")),
    ("17", "ἄνθρωπος", "anthrōpos", "human being, person", "noun", 17, 2, ("common", "philosophy")),
    ("18", "πόλις", "polis", "city, city-state", "noun", 13, 1, ("common", "philosophy")),
    ("19", "οἶκος", "oikos", "house, household", "noun", 9, 3, ("common",)),
    ("20", "βασιλεύς", "basileus", "king", "noun", 14, 2, ("common", "homer")),
)
