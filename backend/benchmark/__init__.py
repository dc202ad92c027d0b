"""
Comparison-and-scoring core.

One run queries both arms (indexed / non-indexed dataset) for the same viewport,
shows each result as it settles and scores the faster arm by server-reported time.
"""
