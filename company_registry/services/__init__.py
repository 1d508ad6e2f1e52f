"""Company service and the storage and geolocation backends it talks to."""
