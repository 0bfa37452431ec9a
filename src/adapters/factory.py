import os

from src.domain.intent import IntentClassifier


def create_intent_classifier(kind: str | None = None) -> IntentClassifier:
    """
    Factory: create the right classifier based on config.

    The kind can be passed explicitly or read from the CLASSIFIER env var.
    Defaults to "claude".
    """
    kind = kind or os.environ.get("CLASSIFIER", "claude")

    if kind == "claude":
        from .claude_intent import ClaudeIntentClassifier

        return ClaudeIntentClassifier(api_key=os.environ["ANTHROPIC_API_KEY"])

    if kind == "simulator":
        from .simulator_intent import SimulatorIntentClassifier

        return SimulatorIntentClassifier()

    raise ValueError(f"Unknown classifier: {kind!r}")
