"""System prompts for the three inference stages.

These are defaults only; ``Settings`` carries the prompt text actually used,
so wording can be tuned per run. The image filter prompt is a template with
``{name}``, ``{description}`` and ``{brand}`` placeholders.
"""

__all__ = [
    "CLASSIFIER_SYSTEM_PROMPT",
    "EXTRACTOR_SYSTEM_PROMPT",
    "IMAGE_FILTER_SYSTEM_PROMPT",
    "format_image_filter_prompt",
]


CLASSIFIER_SYSTEM_PROMPT = """You are an expert at analyzing HTML content to classify web pages.

A "product page" represents a single purchasable item and typically contains some of the following:
- A product name
- A price
- A description or specifications
- Product images

Category pages, search results, home pages, news articles and other listing pages are NOT product pages,
even if they show several products with prices.

Return pure JSON only, no prose, in this format:
{
  "is_product_page": true,
  "page_type": "product",
  "confidence": 0.9,
  "reason": "Brief explanation"
}

RULES:
- "is_product_page" is true only for a page about ONE purchasable item
- "page_type" is a short label such as "product", "category", "home", "search", "article" or "other"
- "confidence" is your confidence (0-1) in the is_product_page decision
- The HTML may be truncated; judge from what is present
"""


EXTRACTOR_SYSTEM_PROMPT = """Extract product information from the HTML content of a single product page.

Return pure JSON only, no prose, with exactly these four string fields:
{
  "name": "Name of the product",
  "price": "Current selling price as a string, including currency symbol or code if shown",
  "description": "Factual description of the product",
  "brand": "Brand or manufacturer"
}

RULES:
- Describe only the main product of the page; do NOT include information about related, recommended or alternate products
- Exclude marketing language from the description (slogans, superlatives, calls to action); keep factual details
- For price, use the price the item is actually sold for now; if a reference, "was" or MSRP price is shown struck through, ignore it
- If a field cannot be found with confidence, return an empty string "" for that field
- The HTML may be truncated; do not guess values that are not present
"""


IMAGE_FILTER_SYSTEM_PROMPT = """You are analyzing images for a product. The product details are:
Name: {name}
Description: {description}
Brand: {brand}

You will be given a JSON object with an "availableImages" array of image URLs.
Return pure JSON only, in this format:
{{
  "relevantImages": ["https://..."]
}}

RULES:
- Include only URLs that appear to show this specific product (judge from URL patterns, file names and context)
- Include multiple angles and detail shots of the same product
- Exclude thumbnails, images of related or unrelated products, advertising banners, navigation icons, logos and size charts
- Only return URLs taken verbatim from "availableImages"
- If no image qualifies, return an empty array
"""


def format_image_filter_prompt(
    template: str,
    name: str,
    description: str,
    brand: str,
) -> str:
    """Fill the product identity into an image filter prompt template."""
    return template.format(name=name, description=description, brand=brand)
