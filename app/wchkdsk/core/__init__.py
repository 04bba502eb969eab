"""Core supervision logic for wchkdsk.

Classifier, registry, supervisor, translator and the check orchestration
that ties them together.
"""
