"""Localized progress messages for the onboarding stream."""

from typing import Callable, Optional

from coachflow.config import settings

MESSAGES = {
    "en": {
        "starting": "Getting started...",
        "creatingProfile": "Creating your profile...",
        "profileCreated": "Profile created",
        "planningWorkout": "Planning your training...",
        "analyzingApproach": "Analyzing your training approach...",
        "generatingSplit": "Generating your personalized split...",
        "splitCreated": "Training split created",
        "finalizingSetup": "Finalizing your setup...",
        "setupComplete": "All set!",
        "resuming": "Resuming where you left off...",
        "failedToGenerate": "Failed to complete onboarding",
    },
    "de": {
        "starting": "Los geht's...",
        "creatingProfile": "Profil wird erstellt...",
        "profileCreated": "Profil erstellt",
        "planningWorkout": "Training wird geplant...",
        "analyzingApproach": "Trainingsansatz wird analysiert...",
        "generatingSplit": "Dein persönlicher Split wird erstellt...",
        "splitCreated": "Trainingssplit erstellt",
        "finalizingSetup": "Einrichtung wird abgeschlossen...",
        "setupComplete": "Alles bereit!",
        "resuming": "Wird fortgesetzt...",
        "failedToGenerate": "Onboarding konnte nicht abgeschlossen werden",
    },
}


def resolve_locale(locale: Optional[str]) -> str:
    """Supported locale for a requested one, e.g. 'de-AT' -> 'de'."""
    if locale:
        language = locale.replace("_", "-").split("-")[0].lower()
        if language in MESSAGES:
            return language
    return settings.DEFAULT_LOCALE if settings.DEFAULT_LOCALE in MESSAGES else "en"


def get_translator(locale: Optional[str]) -> Callable[[str], str]:
    """Translator for a locale. Unknown keys fall back to English, then the key."""
    catalog = MESSAGES[resolve_locale(locale)]

    def translate(key: str) -> str:
        return catalog.get(key) or MESSAGES["en"].get(key, key)

    return translate
