"""Form schemas: field descriptors, mapping and per-resource definitions."""
