"""Application layer – event sourcing, command glue and the middleware pipeline."""
