"""
Scoring core: directional guide tests, robust rank aggregation, permutation
null model, target-level results and ROC/PRC evaluation.
"""
