"""mintline: collection-bound asset minting pipeline."""
