#!/usr/bin/env python3
"""
Print the models the primary provider family exposes and the candidates chosen per kind.
Run from the project root: python -m scripts.list_models
"""
import os
import sys

# project root on PYTHONPATH
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.core.config import settings
from app.services.generation import GenerationKind, ProviderFactory, resolve_candidates


def main():
    context = ProviderFactory.build_context(settings)
    family = context.primary
    if not family.is_available():
        print(f"{family.name}: not configured, static defaults only")
    else:
        try:
            for model in family.list_models():
                print(model.get("name"))
        except Exception as e:
            print(f"{family.name}: listing failed ({type(e).__name__})")
    print()
    for kind in GenerationKind:
        print(f"{kind.value}: {', '.join(resolve_candidates(family, kind))}")
    print(f"fallback: {context.secondary.name} ({'configured' if context.secondary.is_available() else 'not configured'})")


if __name__ == "__main__":
    main()
