"""Team Streem Realm: progress tracker for a family Minecraft mega-build.

Airtable holds the build records; this package reads and writes them, keeps
zone changes the base cannot store yet on this device, and exposes the
build through a CLI and a Claude build assistant.
"""

__version__ = "0.1.0"
