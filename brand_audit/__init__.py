"""Brand site audit: sitemap crawling, technical SEO + LLMO scoring, brand reports."""

__version__ = "1.0.0"
