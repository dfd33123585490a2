"""
Script de inicio de la API

Ejecuta la API de finanzas desde la raíz del proyecto.
"""

import sys
from pathlib import Path

# Agregar el directorio actual al path
sys.path.insert(0, str(Path(__file__).parent))

from config.settings import settings
from src.api.app import run_api

if __name__ == '__main__':
    run_api(reload=settings.is_development())
