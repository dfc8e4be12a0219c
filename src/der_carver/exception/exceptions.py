class CarverError(Exception):
    """Erreur générique du carving."""


class CarverReadError(CarverError):
    """Fichier d'entrée illisible ou trop volumineux (erreur fatale avant le scan)."""
