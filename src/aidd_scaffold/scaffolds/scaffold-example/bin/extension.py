"""Post hook for the example scaffold: records that scaffolding finished."""

from pathlib import Path

marker = Path.cwd() / ".scaffold-complete"
marker.write_text("scaffold-example\n", encoding="utf-8")
print(f"Wrote {marker}")
