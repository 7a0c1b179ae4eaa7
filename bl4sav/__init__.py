"""
BL4SAV - Borderlands 4 save codec

Decrypts and re-encrypts `.sav` containers, decodes the `@Ug` item serials
found inside them and writes edited stats back.
"""

from .main import *
from .errors import *
from .models import *
from .api_container import *
from .api_items import *
from .version import __version__

def derive_key(platform_id: str, platform: str = "auto") -> bytes: return bl4sav.derive_key(platform_id, platform)
def parse_platform_id(platform_id: str): return bl4sav.parse_platform_id(platform_id)
def extract_character_info(document): return bl4sav.extract_character_info(document)
def file_display_name(file_name: str, info=None): return bl4sav.file_display_name(file_name, info)
