"""Core constants for papercontext."""

# Embedding model defaults
OPENAI_DEFAULT_EMBEDDING_MODEL = "text-embedding-3-small"

# Chunking
CHUNK_TARGET_LENGTH = 2000
CHUNK_OVERLAP = 200

# Retrieval
EMBEDDING_BATCH_SIZE = 16
HYBRID_WEIGHT_BM25 = 0.5
HYBRID_WEIGHT_EMBEDDING = 0.5
RETRIEVAL_TOP_K_PER_PAPER = 24
RETRIEVAL_MMR_LAMBDA = 0.7
RETRIEVAL_MIN_ACTIVE_PAPER_CHUNKS = 2
RETRIEVAL_MIN_OTHER_PAPER_CHUNKS = 1

# BM25
BM25_K1 = 1.2
BM25_B = 0.75

# Diversity signature used by the MMR packer
DIVERSITY_TOKEN_LIMIT = 256

# Token accounting
TOKEN_ESTIMATE_CHARS_PER_TOKEN = 4
MESSAGE_OVERHEAD_ESTIMATED_TOKENS = 4
IMAGE_PART_ESTIMATED_TOKENS = 1_024
TOKEN_SAFETY_RATIO = 0.9
MIN_SOFT_LIMIT_TOKENS = 1_024
MIN_CONTEXT_BUDGET_TOKENS = 1_024
EXTRA_RETRIEVAL_MIN_TOKENS = 1_024

DEFAULT_MAX_TOKENS = 4_096
MAX_ALLOWED_TOKENS = 65_536
DEFAULT_INPUT_TOKEN_CAP = 128_000
MAX_ALLOWED_INPUT_TOKEN_CAP = 10_000_000

MIN_OUTPUT_RESERVE_TOKENS = 512
MAX_OUTPUT_RESERVE_TOKENS = 8_192

# Reasoning reserve per level; "none" covers requests without reasoning
REASONING_RESERVE_TOKENS = {
    "none": 256,
    "default": 1_024,
    "minimal": 512,
    "low": 1_024,
    "medium": 2_048,
    "high": 4_096,
    "xhigh": 8_192,
}

# Conversation assembly and capping
CONTEXT_PREFIX = "Document Context:\n"
CONTEXT_TRUNCATION_NOTICE = "[Context truncated to fit model input limit]"
PROMPT_TRUNCATION_NOTICE = "[Prompt truncated to fit model input limit]"
MIN_CONTEXT_CHARS = 256
MIN_PROMPT_CHARS = 64
CONTEXT_TRIM_PASSES = 24
PROMPT_TRIM_PASSES = 32

CONTEXT_BLOCK_SEPARATOR = "\n\n---\n\n"
SEMANTIC_DEGRADED_NOTE = "continuing without semantic search"

DEFAULT_SYSTEM_PROMPT = """You are an intelligent research assistant. You help users analyze and understand academic papers and documents.

When answering questions:
- Be concise but thorough
- Cite specific parts of the document when relevant, using the evidence labels such as [P1-C3]
- Use markdown formatting for better readability (headers, lists, bold, code blocks)
- For mathematical expressions, use $...$ for inline math and $$...$$ for display equations
- If you don't have enough information to answer, say so clearly"""

STOPWORDS = frozenset(
    {
        "the", "and", "for", "with", "that", "this", "from", "are", "was",
        "were", "has", "have", "had", "but", "not", "you", "your", "our",
        "their", "its", "they", "them", "can", "could", "may", "might",
        "will", "would", "also", "than", "then", "into", "about", "what",
        "which", "when", "where", "how", "why", "who", "whom", "been",
        "being", "such", "over", "under", "between", "within", "using",
        "use", "used", "via", "per", "et", "al",
    }
)
