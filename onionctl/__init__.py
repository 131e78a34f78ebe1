"""onionctl - command-line client for onion-relay nodes."""
