"""Reference workflows built on the stringcost runtime."""
