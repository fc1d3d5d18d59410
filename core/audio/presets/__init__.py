"""Bundled MarkerConfig presets (YAML), read by core/audio/_preset_loader.py."""
