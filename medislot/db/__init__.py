"""Database base, engine and initialization."""
