#!/usr/bin/env python3
"""
Second Opinion Router Quickstart Example

Demonstrates routing decisions, availability remapping and escalation
without calling any provider (local heuristic classification only).
"""

from second_opinion import (
    Config,
    ProviderCredentials,
    SecondOpinionRouter,
    escalation_path,
)


def main():
    """Run quickstart demonstration."""
    print("=== Second Opinion Router Quickstart ===\n")

    both = Config(
        openai=ProviderCredentials(api_key="sk-demo"),
        gemini=ProviderCredentials(api_key="gm-demo"),
        mode="heuristic",
    )
    router = SecondOpinionRouter(both)

    print("1. Configured providers:", ", ".join(router.availability.providers()))
    print()

    test_prompts = [
        ("Multimodal", "Here is a screenshot of the login page, what looks off?"),
        ("Pipeline", "Classify this ticket as bug or feature: button does nothing"),
        ("General", "Write a short docstring for a function that merges two sorted lists"),
        ("Heavy", "Not sure how to approach the production database migration, "
                  "what do you think about the security tradeoffs?"),
    ]

    print("2. Routing decisions:")
    for label, prompt in test_prompts:
        decision = router.route(prompt)
        print(f"   {label:<10} -> {decision.selected_model:<24} "
              f"(confidence {decision.confidence:.2f}) {decision.reason}")
    print()

    print("3. Only OpenAI configured:")
    openai_only = SecondOpinionRouter(Config(
        openai=ProviderCredentials(api_key="sk-demo"), mode="heuristic",
    ))
    decision = openai_only.route(test_prompts[0][1])
    print(f"   {decision.selected_model}: {decision.reason}")
    print()

    print("4. Escalation paths:")
    for model in ("gpt-5-nano", "gemini-3-flash-preview"):
        print("   " + " -> ".join(escalation_path(model)))
    print()

    print("5. Explanation:")
    print(router.explain(router.route(test_prompts[1][1])))


if __name__ == "__main__":
    main()
