"""Smart product search over a denormalized Elasticsearch index."""
