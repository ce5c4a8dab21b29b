"""Monitoreo ambiental de obras: ingesta de lecturas, alertas por umbral y colector."""
