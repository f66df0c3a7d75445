"""HTTP adapter for visitrack."""
