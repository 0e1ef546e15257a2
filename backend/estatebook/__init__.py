"""EstateBook backend: harvests, expenses and tea collector ledgers."""
