#!/usr/bin/env python3
"""Live second-opinion checks against configured providers.

Needs OPENAI_API_KEY and/or GEMINI_API_KEY (or a config.json). Makes real
provider calls, so it is not part of the pytest suite.
"""

import json

from second_opinion import Config, SecondOpinionRouter


def main():
    config = Config.load()
    if not config.availability.any:
        print("No providers configured. Set OPENAI_API_KEY and/or GEMINI_API_KEY.")
        return

    router = SecondOpinionRouter(config)

    test_prompts = [
        "Classify this ticket as bug or feature: the save button does nothing",
        "Write a short docstring for a function that merges two sorted lists",
        "Here is a screenshot of an error dialog, what could cause it?",
        """Not sure how to approach this: we need to migrate the production
payments database to a new schema without downtime. What are the risks?""",
    ]

    print("🧪 LIVE SECOND OPINION TESTS\n")
    print(f"Providers: {', '.join(config.availability.providers())}")
    print(f"Classification: {router.classifier.strategy}\n")

    models_used = {}
    for i, prompt in enumerate(test_prompts, 1):
        try:
            opinion = router.ask(prompt)
        except Exception as e:
            print(f"Test {i}: FAILED ({e})\n")
            continue

        models_used[opinion.model_used] = models_used.get(opinion.model_used, 0) + 1
        print(f"Test {i}: {opinion.decision.selected_model}")
        print(f'  Prompt: "{prompt[:60]}{"..." if len(prompt) > 60 else ""}"')
        print(f"  Answered by: {opinion.model_used} (attempts: {', '.join(opinion.attempts)})")
        print(f"  Confidence: {opinion.decision.confidence:.2f}")
        print(f"  Reason: {opinion.decision.reason}")
        print(f"  Response: {opinion.response_text[:120]}")
        print()

    print("📊 MODEL USAGE")
    print(json.dumps(models_used, indent=2))


if __name__ == "__main__":
    main()
