"""AssetForge geometry core: asset normalization and weapon handle detection."""
