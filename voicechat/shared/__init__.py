"""Configuration, wire types and errors shared by client and gateway."""
