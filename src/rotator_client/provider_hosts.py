"""Provider signatures used to guess a secret name when no env value matches"""

# Host signature -> conventional env var name. Checked in order, so keep
# more specific signatures ahead of broader ones.
PROVIDER_HOST_MAP = {
    # OpenAI
    "api.openai.com": "OPENAI_API_KEY",

    # Anthropic
    "api.anthropic.com": "ANTHROPIC_API_KEY",

    # Google (Gemini)
    "generativelanguage.googleapis.com": "GEMINI_API_KEY",

    # Mistral AI
    "api.mistral.ai": "MISTRAL_API_KEY",

    # Cohere
    "api.cohere.ai": "COHERE_API_KEY",
    "api.cohere.com": "COHERE_API_KEY",

    # OpenRouter
    "openrouter.ai": "OPENROUTER_API_KEY",

    # Together AI
    "api.together.xyz": "TOGETHER_API_KEY",

    # Fireworks AI
    "api.fireworks.ai": "FIREWORKS_API_KEY",

    # Perplexity
    "api.perplexity.ai": "PERPLEXITY_API_KEY",

    # Groq
    "api.groq.com": "GROQ_API_KEY",

    # DeepInfra
    "api.deepinfra.com": "DEEPINFRA_API_KEY",

    # Social and developer platforms
    "tiktok.com": "TIKTOK_API_KEY",
    "api.twitter.com": "TWITTER_API_KEY",
    "api.x.com": "TWITTER_API_KEY",
    "api.github.com": "GITHUB_TOKEN",
    "slack.com": "SLACK_BOT_TOKEN",

    # Payments
    "api.stripe.com": "STRIPE_SECRET_KEY",
}

# Well-known token prefixes -> conventional env var name. Checked in order;
# "sk-" must stay last since the other sk- prefixes share it.
TOKEN_PREFIX_MAP = {
    "sk-ant-": "ANTHROPIC_API_KEY",
    "sk-or-": "OPENROUTER_API_KEY",
    "gsk_": "GROQ_API_KEY",
    "ghp_": "GITHUB_TOKEN",
    "github_pat_": "GITHUB_TOKEN",
    "xoxb-": "SLACK_BOT_TOKEN",
    "sk_live_": "STRIPE_SECRET_KEY",
    "AIza": "GEMINI_API_KEY",
    "sk-": "OPENAI_API_KEY",
}

# Prefix of the "sk_<provider>_<secret>" convention, e.g. sk_tiktok_abc -> TIKTOK_API_KEY
PROVIDER_TOKEN_PREFIX = "sk_"

# Tokens that look like the convention but are environment markers, not providers
NON_PROVIDER_TOKEN_SEGMENTS = {"test", "live", "prod", "dev"}
