"""
Inverted-index search stack for the site content.

- analyzers: tokenizer, trimming, stopwords and Porter stemming
- schema: searchable fields and their boosts
- stats: BM25 scoring helpers
- query: query string parsing (wildcards, field scoping, presence, boosts)
- index: in-memory inverted index, its writer and serialization
- filters: predicate filtering over search hits
- indexer: publish-time artifact builder
"""
