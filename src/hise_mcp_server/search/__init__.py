"""
Search indexing and query engine package.

- tokenizer: keyword extraction shared by indexing and querying
- index: immutable CorpusIndex snapshots (exact maps, catalog, keyword index)
- similarity: the single fuzzy scoring function
- engine: four-stage ranked search and "did you mean" suggestions
- relations: keyword-overlap related items
"""
