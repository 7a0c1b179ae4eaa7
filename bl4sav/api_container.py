"""Container-level convenience wrappers."""

from .main import bl4sav


def decrypt_sav(data: bytes, platform_id: str, platform: str = "auto") -> bytes:
    return bl4sav.decode_container(data, platform_id, platform)


def encrypt_sav(yaml_bytes: bytes, platform_id: str, platform: str = "auto") -> bytes:
    return bl4sav.encode_container(yaml_bytes, platform_id, platform)


def load_save(data: bytes, platform_id: str, platform: str = "auto"):
    return bl4sav.load_save(data, platform_id, platform)


def write_save(document, platform_id: str, platform: str = "auto") -> bytes:
    return bl4sav.write_save(document, platform_id, platform)


def convert_yaml_to_sav(yaml_content: str, platform_id: str, platform: str = "auto") -> bytes:
    return bl4sav.convert_yaml_to_sav(yaml_content, platform_id, platform)


def verify_yaml_roundtrip(yaml_content: str, platform_id: str, platform: str = "auto"):
    return bl4sav.verify_yaml_roundtrip(yaml_content, platform_id, platform)


def decrypt_file(path: str, platform_id: str, output: str | None = None, platform: str = "auto"):
    return bl4sav.decrypt_file(path, platform_id, output=output, platform=platform)


def encrypt_file(path: str, platform_id: str, output: str | None = None, platform: str = "auto"):
    return bl4sav.encrypt_file(path, platform_id, output=output, platform=platform)


def process_save_files(files, platform_id: str, platform: str = "auto"):
    return bl4sav.process_save_files(files, platform_id, platform)


__all__ = [
    "convert_yaml_to_sav",
    "decrypt_file",
    "decrypt_sav",
    "encrypt_file",
    "encrypt_sav",
    "load_save",
    "process_save_files",
    "verify_yaml_roundtrip",
    "write_save",
]
