"""
Matching module for chart-finder.

Components:
    - normalize: Text normalization and bounded edit distance
    - index: IdentityIndex (fuzzy artist lookup)
    - matcher: CandidateMatcher and the installed predicate
    - selection: Chart selector rule engine

Submodules are imported directly (chart_finder.matching.matcher, ...);
the catalog models depend on normalize, so this package does not
re-export anything.
"""
