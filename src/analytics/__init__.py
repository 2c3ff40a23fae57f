"""Aggregation helpers shared by the research analyzers and chart builders."""
