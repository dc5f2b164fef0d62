"""pricetrack core: models, storage adapters and services."""
