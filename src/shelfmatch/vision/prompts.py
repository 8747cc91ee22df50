# ABOUTME: Prompt templates for the vision service's tier comparison and joint selection calls.
# ABOUTME: Templates use {{placeholder}} markers filled by render_prompt().

import re

from shelfmatch.catalog.types import CandidateProduct, ExtractedMetadata

_PLACEHOLDER_RE = re.compile(r"\{\{(\w+)\}\}")

TIER_COMPARISON_PROMPT = """\
Compare these two product images and determine their match status.
Image 1 is a product cropped from a store shelf. Image 2 is a catalog reference image.

SHELF PRODUCT (extracted from image, may contain reading errors):
- Brand: {{brand}}
- Product Name: {{productName}}
- Size: {{size}}
- Flavor: {{flavor}}

CATALOG PRODUCT:
- Title: {{candidateTitle}}
- Brand: {{candidateBrand}}
- Size: {{candidateSize}}

Analyze systematically: package form and shape, color scheme, unique visual
elements (logo, graphics, patterns, badges), text and typography, overall layout.

Return a JSON object with this structure:
{
  "matchStatus": "identical" or "almost_same" or "not_match",
  "confidence": 0.0 to 1.0,
  "visualSimilarity": 0.0 to 1.0,
  "reason": "Brief explanation including key matching/mismatching elements"
}

matchStatus definitions:

1. "identical": brand, product, variant/flavor, size and packaging all match.

2. "almost_same": same brand and product line, differing in exactly one
   dimension (size, flavor, or a minor packaging revision).

3. "not_match": different brand or different product type.

confidence: how certain you are about matchStatus (0.0 uncertain, 1.0 certain).

visualSimilarity: how alike the images LOOK overall:
  * Identical-looking products = 0.9-1.0
  * Close variants = 0.7-0.9
  * Same brand, different product line = 0.3-0.6
  * Different brands = 0.0-0.3

Only return the JSON object, nothing else."""

JOINT_SELECTION_PROMPT = """\
You are a visual product matching expert. Select the BEST MATCH from multiple \
candidates using a two-step approach.

SHELF PRODUCT (extracted from image):
- Brand: {{brand}}
- Product Name: {{productName}}
- Size: {{size}}
- Flavor: {{flavor}}
- Category: {{category}}

CANDIDATES ({{candidateCount}} options):
{{candidateDescriptions}}

IMAGES:
- Image 1: Shelf product (REFERENCE)
- Images 2-{{candidateImageCount}}: Candidate products, in candidate order

STEP 1: VISUAL SIMILARITY (primary filter)
Compare Image 1 with each candidate image. Unique visual elements (logo design,
graphics, patterns, badges) are the strongest identity signal, followed by
package form and colors, then layout and typography.
- Score visualSimilarity (0.0-1.0) for EACH candidate
- Identify candidates with visualSimilarity >= {{visualThreshold}}

STEP 2: METADATA VERIFICATION (tie-break, only if 2+ candidates pass step 1)
- Brand: should match (allow minor spelling variations)
- Size: should be SIMILAR; accept +/-20% variation or different units for the same amount
- Flavor: should match MEANING, not exact wording ("Strawberry" = "Straw")

DECISION LOGIC:
- If ONLY ONE candidate passes step 1, select it
- If 2+ candidates pass step 1, use brand/size/flavor to pick the best match
- If NO candidates pass step 1, return null

Return JSON with this EXACT structure:
{
  "selectedCandidateIndex": 1-{{candidateCount}} or null,
  "confidence": 0.0 to 1.0,
  "reasoning": "Explain the visual scores, which candidates passed step 1, and how metadata decided",
  "visualSimilarityScore": 0.0 to 1.0 (score for the selected candidate),
  "brandMatch": true or false,
  "sizeMatch": true or false,
  "flavorMatch": true or false,
  "candidateScores": [
    {
      "candidateIndex": 1,
      "candidateId": "candidate-1",
      "visualSimilarity": 0.0 to 1.0,
      "passedThreshold": true or false
    }
  ]
}

Only return the JSON object, nothing else."""


def render_prompt(template: str, values: dict[str, str]) -> str:
    """Replace each {{name}} marker with its value; unknown markers are left as-is."""

    def _substitute(match: re.Match[str]) -> str:
        return values.get(match.group(1), match.group(0))

    return _PLACEHOLDER_RE.sub(_substitute, template)


def metadata_values(metadata: ExtractedMetadata) -> dict[str, str]:
    """Prompt values for the shelf item's extracted metadata."""
    return {
        "brand": metadata.display("brand"),
        "productName": metadata.display("product_name"),
        "size": metadata.display("size"),
        "flavor": metadata.display("flavor"),
        "category": metadata.display("category"),
    }


def describe_candidates(candidates: list[CandidateProduct]) -> str:
    """Render the numbered candidate list for the joint selection prompt."""
    blocks = []
    for number, candidate in enumerate(candidates, start=1):
        blocks.append(
            f"Candidate {number} (key: {candidate.key}):\n"
            f"- Product Name: {candidate.title}\n"
            f"- Brand: {candidate.brand or 'N/A'}\n"
            f"- Size: {candidate.size or 'N/A'}\n"
            f"- Category: {candidate.category or 'N/A'}"
        )
    return "\n\n".join(blocks)
