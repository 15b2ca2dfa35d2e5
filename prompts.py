# prompts.py

# --------------------------------------------------------------------------
# Single call: instruction and input joined by a clear delimiter
# --------------------------------------------------------------------------
SINGLE_INPUT_DELIMITER = "\n\n--- INPUT ---\n"

# --------------------------------------------------------------------------
# Batch call: one request, N items, JSON array of N strings back
# --------------------------------------------------------------------------
BATCH_USER = """{instruction}

CRITICAL JSON FORMATTING RULES:
1. You will receive EXACTLY {count} items to process
2. You MUST return EXACTLY {count} summaries - no more, no less
3. Return ONLY a valid JSON array: ["summary1", "summary2", ...]
4. NEVER use double quotes (") inside summaries - use single quotes (') instead
5. If a summary needs quotes, use single quotes: 'The system is on track'
6. Your ENTIRE response must be ONLY the JSON array - no explanations, no markdown
7. Do NOT wrap response in markdown code blocks
8. Process each item as ONE summary - do not split items

Items to process:
{items}

RESPONSE FORMAT (EXACT):
["summary 1 here", "summary 2 here", ..., "summary {count} here"]

REMEMBER:
- Return EXACTLY {count} summaries
- NO double quotes inside summaries
- ONLY the JSON array, nothing else"""

BATCH_ITEM = "\n=== ITEM {index} OF {count} ===\n{text}"

# --------------------------------------------------------------------------
# PI deferral notes
# --------------------------------------------------------------------------
DEFERRAL_INSTRUCTION = (
    "Summarize the following project status note for an executive. "
    "In one sentence, identify the primary reason for deferral and its impact. "
    "If the note is positive or has no clear risk, state 'On track with no significant risks noted.'"
)

# --------------------------------------------------------------------------
# Epic-level perspectives (one sentence per epic)
# --------------------------------------------------------------------------
SINGLE_RETURN_RULES = """RETURN RULES (HARD):
- Return ONLY the final sentence. No labels, no quotes, no markdown, no extra text.
- Exactly ONE sentence. No semicolons. No line breaks.
- Exactly one period at the very end. No other periods in the response.
- No colons (:), semicolons (;), or dashes used to chain multiple ideas.
- No bullet characters (-, *). No numbered lists.
- If insufficient data, return exactly: N/A"""

BUSINESS_EPIC_STYLE = """TASK:
Write an executive micro-summary of the epic's BUSINESS VALUE.

STYLE RULES:
- Maximum 25 words. If your response exceeds 25 words, shorten it.
- First word must be a present-participle verb (e.g., Delivering, Enabling, Modernizing, Establishing, Streamlining, Automating)
- BANNED first words: "Optimizing", "Enhancing", "Improving", "Updating" (too vague)
- Format: [Verb] + [capability/outcome] + [who/why it matters]
- Focus on business outcome: time saved, risk reduced, revenue protected, adoption improved
- Avoid technical implementation details
- BANNED phrases: "This PI will", "In this PI", "This work will focus on", "The team will"
- Ignore any blank fields and work with what is available

EXAMPLE (22 words):
"Delivering automated payment reconciliation for the billing team to reduce manual processing errors and accelerate month-end close by 3 days.\""""

TECHNICAL_EPIC_STYLE = """TASK:
Write an executive micro-summary of WHAT IS BEING BUILT (technical deliverable).

STYLE RULES:
- Maximum 20 words. If your response exceeds 20 words, shorten it.
- Start with: "The feature...", "The system...", or "The platform..."
- Use exactly one main verb from: builds, integrates, migrates, implements, establishes, automates. Avoid chaining with "and."
- Optional: one short "to..." clause at the end (maximum 6 words)
- Focus on systems, capabilities, integrations, infrastructure, not process or staffing
- BANNED phrases: "Engineers will", "We will", "The team will", "This PI will"
- BANNED words: Epic, Initiative, Story. Use "feature", "system", "platform" instead
- Ignore any blank fields and work with what is available

EXAMPLE (16 words):
"The platform integrates OAuth 2.0 authentication with legacy billing systems to enable single sign-on access.\""""

EPIC_STYLES = {
    "Business": BUSINESS_EPIC_STYLE,
    "Technical": TECHNICAL_EPIC_STYLE,
}

# Instruction used when many epic contexts go out in one batch request.
EPIC_BATCH_INSTRUCTIONS = {
    "Business": SINGLE_RETURN_RULES + "\n\n" + BUSINESS_EPIC_STYLE,
    "Technical": SINGLE_RETURN_RULES + "\n\n" + TECHNICAL_EPIC_STYLE,
}

SINGLE_EPIC_PROMPT = """{return_rules}

EPIC: {epic_key}

AVAILABLE DATA:
{context_text}

{style}"""

# --------------------------------------------------------------------------
# Initiative-level (merged) perspectives
# --------------------------------------------------------------------------
MERGED_RETURN_RULES = """RETURN RULES (HARD):
- Return ONLY the summary sentences. No labels, no quotes, no markdown, no extra text.
- Each sentence ends with exactly one period. No other punctuation used as sentence separators.
- No colons (:), semicolons (;), or dashes used to chain multiple ideas.
- No bullet characters (-, *). No numbered lists.
- If insufficient data, return exactly: N/A"""

BUSINESS_MERGED_STYLE = """TASK:
Synthesize the epics into ONE cohesive initiative-level value proposition.

STYLE RULES:
- 2-3 sentences, maximum 50 words total. If your response exceeds 50 words, shorten it.
- Sentence 1: The business problem or opportunity this initiative addresses
- Sentence 2: What capability is being delivered across the epics
- Sentence 3 (optional): Expected business outcome or impact
- SYNTHESIZE across all epics, do not list them individually
- Start with: "The program..." or "This initiative..."
- BANNED: "Epic 1", "Epic 2", "This PI will"
- Use "program" or "feature" instead of "Epic" or "Initiative"

GOOD: "The authentication program addresses growing security risks across customer-facing platforms. It delivers unified identity management with multi-factor authentication, reducing unauthorized access incidents while improving login experience."

BAD: "Epic 1 implements OAuth. Epic 2 adds MFA. Epic 3 handles permissions.\""""

TECHNICAL_MERGED_STYLE = """TASK:
Synthesize the epics into ONE cohesive initiative-level technical overview.

STYLE RULES:
- 2-3 sentences, maximum 50 words total. If your response exceeds 50 words, shorten it.
- Describe the OVERALL technical approach and key systems involved
- SYNTHESIZE across all epics, do not list them individually
- Start with: "The program builds..." or "The system delivers..."
- BANNED: "Epic 1", "Epic 2", "This PI will"
- Use "program" or "system" instead of "Epic" or "Initiative"
- Technical language appropriate for executive audience

GOOD: "The program builds a cloud-native authentication framework using OAuth 2.0 and SAML, integrating with existing identity providers to enable unified access management across web and mobile platforms."

BAD: "Epic 1 does OAuth API. Epic 2 builds frontend. Epic 3 adds database.\""""

MERGED_STYLES = {
    "Business": BUSINESS_MERGED_STYLE,
    "Technical": TECHNICAL_MERGED_STYLE,
}

MERGED_PROMPT = """{return_rules}

INITIATIVE:
Title: {title}
Key: {parent_key}
{description_line}
CHILD EPICS:
{children}

{style}"""

MERGED_CHILD_HEADER = "\n=== EPIC {index} ({key}) ===\n"

MERGED_BATCH_INSTRUCTIONS = {
    "Business": (
        "You are creating executive business value propositions. Each input describes an initiative "
        "with child epics. Synthesize into ONE cohesive statement: what business problem is addressed, "
        "what capability is delivered, and expected impact. Maximum 50 words per response. "
        "No bullet points. No \"Epic 1/2/3\" references. No colons or dashes to chain ideas. "
        "Each sentence ends with exactly one period."
    ),
    "Technical": (
        "You are creating executive technical overviews. Each input describes an initiative with "
        "child epics. Synthesize into ONE cohesive statement: what systems are being built, key "
        "technologies involved, and technical approach. Maximum 50 words per response. "
        "No bullet points. No \"Epic 1/2/3\" references. No colons or dashes to chain ideas. "
        "Each sentence ends with exactly one period."
    ),
}

PERSPECTIVES = ("Business", "Technical")


def build_single_epic_prompt(epic_key: str, context_text: str, perspective: str) -> str:
    return SINGLE_EPIC_PROMPT.format(
        return_rules=SINGLE_RETURN_RULES,
        epic_key=epic_key,
        context_text=context_text.rstrip(),
        style=EPIC_STYLES[perspective],
    )


def build_merged_prompt(title: str, parent_key: str, description: str, children: str, perspective: str) -> str:
    return MERGED_PROMPT.format(
        return_rules=MERGED_RETURN_RULES,
        title=title,
        parent_key=parent_key,
        description_line=f"Description: {description}\n" if description else "",
        children=children.strip("\n"),
        style=MERGED_STYLES[perspective],
    )
