"""Configuration and logging shared by the pipeline, persistence layer and CLI."""
