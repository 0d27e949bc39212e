"""Cross-cutting infrastructure: config, logging, errors and extensions."""
