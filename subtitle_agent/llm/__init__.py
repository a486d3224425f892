"""Text-generation capabilities: protocols, response models, HTTP client."""
