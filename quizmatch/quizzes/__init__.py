"""Quiz loading and the public storefront representation."""
