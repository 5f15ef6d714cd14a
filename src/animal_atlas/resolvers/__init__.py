"""Sequential fallback resolvers for facts and images."""
