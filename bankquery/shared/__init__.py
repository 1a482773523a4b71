"""Small value-coercion helpers shared by the parser, predicates and functions."""
