"""JSON schemas bundled with geoqtree."""
