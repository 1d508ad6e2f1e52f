"""Company registry API with geo-restricted writes."""
