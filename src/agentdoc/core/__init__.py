"""Core compiler library: IR, source provider, compiler pipeline and config."""
