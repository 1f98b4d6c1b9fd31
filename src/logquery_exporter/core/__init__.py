"""Domain core: models, ports and the poll-query-map loop."""
