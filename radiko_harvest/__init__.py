"""Harvest radiko station and weekly schedule XML into JSON artifacts and serve them."""
