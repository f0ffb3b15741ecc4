"""sitechat: retrieval-augmented chat over a scraped website corpus."""

__version__ = "0.1.0"
