"""Data models for proofstep: session nodes, wire schema, configuration."""
