"""monover - version management for Cargo and npm workspaces."""
