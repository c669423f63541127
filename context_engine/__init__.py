"""Incremental codebase indexing and search coordination over a remote retrieval backend."""
