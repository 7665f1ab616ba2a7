# prompts.py
# Templates use {{name}} placeholders, filled by ai_helpers.render_prompt

RFP_GENERATION_PROMPT = """
You are a procurement assistant. Convert the buyer's description of what they need into a structured RFP.

Input text: "{{userInput}}"

Return only a JSON object with these fields:
{
  "title": string,
  "summary": string,
  "budget": number | null,
  "currency": string,
  "delivery_requirements": string | null,
  "items": [{"name": string, "quantity": number, "specs": string}],
  "payment_terms": string | null,
  "warranty_requirements": string | null
}

Use null for values the text does not mention.
Currency must be a 3-letter code such as USD.
Put every technical detail of an item into its "specs".
"""

PROPOSAL_PARSING_PROMPT = """
You are a procurement analyst. Extract the key terms of a vendor's proposal email.

RFP context (JSON):
{{rfpContext}}

Vendor text:
"{{vendorText}}"

Return only a JSON object with these fields:
{
  "totalPrice": number | null,
  "currency": string | null,
  "deliveryDays": number | null,
  "warrantyMonths": number | null,
  "paymentTerms": string | null,
  "completenessScore": number,
  "risks": [string],
  "caveats": string | null
}

Rules:
- "completenessScore" is between 0.0 and 1.0: how fully the proposal covers the RFP items.
- "standard warranty" with no stated duration means 12 months.
- Convert durations: "1 year" is 12 months, "3 weeks" is 21 days.
- If the price is a range, use the upper bound (or the average if no upper bound is clear).
- Currency must be a 3-letter code such as USD.
"""

COMPARISON_PROMPT = """
You are a procurement expert. Compare the vendor proposals below against the RFP and recommend one vendor.
Each proposal carries a deterministic "score" (0-100, higher is better) computed from price, delivery,
warranty and completeness; weigh it together with the qualitative detail in "notes".

RFP:
{{rfpData}}

Proposals:
{{proposalsData}}

Return only a JSON object:
{
  "recommended_vendor_id": number,
  "reasoning": string,
  "pros_cons": {"<vendor name>": {"pros": [string], "cons": [string]}}
}
"""
