"""
Prompt templates for question answering, document analysis and comparison.
"""

ANSWER_SYSTEM_PROMPT = (
    "You are a helpful assistant that answers questions based on provided "
    "document context. If the answer cannot be found in the context, clearly "
    "state that."
)

ANSWER_PROMPT = """Based on the following document context, answer the user's question.
If the answer cannot be found in the context, say so clearly.

Context: {context}

Question: {question}

Answer:"""


ANALYSIS_SYSTEM_PROMPT = (
    "You are a legal document analysis assistant. Analyze documents and "
    "provide structured summaries."
)

ANALYSIS_PROMPT = """Analyze the following legal document and provide:
1. A concise summary (2-3 sentences)
2. Key points (5-7 main points)
3. Named entities (people, organizations, dates, amounts)

Document: {filename}
Content: {content}

Respond in JSON format:
{{
  "summary": "...",
  "keyPoints": ["...", "..."],
  "entities": [{{"text": "...", "type": "...", "confidence": 0.95}}]
}}"""


COMPARISON_SYSTEM_PROMPT = (
    "You are a legal document comparison assistant. Compare documents and "
    "provide structured analysis."
)

COMPARISON_PROMPT = """Compare these two legal documents and provide:
1. Overall similarity score (0-1)
2. Key differences
3. Common clauses
4. Notable changes

Document 1: {doc1}
Document 2: {doc2}

Respond in JSON format:
{{
  "similarityScore": 0.85,
  "differences": ["...", "..."],
  "commonClauses": ["...", "..."],
  "changes": ["...", "..."]
}}"""
