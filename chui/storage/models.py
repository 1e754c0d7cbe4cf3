PROFILES = "profiles"
CONVERSATIONS = "conversations"
MEMBERS = "conversation_members"
MESSAGES = "messages"

# Unique keys every store must enforce. The Supabase schema below carries the
# same constraints; MemoryStore is configured from this mapping.
UNIQUE_KEYS: dict[str, list[tuple[str, ...]]] = {
    PROFILES: [("username",), ("auth_user_id",)],
    CONVERSATIONS: [("pair_key",)],
    MEMBERS: [("conversation_id", "user_id")],
    MESSAGES: [],
}


profiles_sql = """
CREATE TABLE profiles (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    username TEXT NOT NULL,
    email TEXT,
    auth_user_id UUID REFERENCES auth.users(id) ON DELETE SET NULL,
    created_at BIGINT NOT NULL,
    updated_at BIGINT NOT NULL,

    CONSTRAINT unique_username UNIQUE (username),
    CONSTRAINT unique_auth_user_id UNIQUE (auth_user_id)
);
"""

conversations_sql = """
CREATE TABLE conversations (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    kind TEXT NOT NULL DEFAULT 'direct',

    -- "<smaller id>:<larger id>"
    pair_key TEXT NOT NULL,
    created_by UUID NOT NULL REFERENCES profiles(id),

    created_at BIGINT NOT NULL,
    updated_at BIGINT NOT NULL,

    last_message_at BIGINT,
    last_message_preview TEXT,
    last_message_sender_id UUID REFERENCES profiles(id),

    -- Only one conversation per user pair
    CONSTRAINT unique_pair_key UNIQUE (pair_key)
);
"""

conversation_members_sql = """
CREATE TABLE conversation_members (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    conversation_id UUID NOT NULL REFERENCES conversations(id),
    user_id UUID NOT NULL REFERENCES profiles(id),
    joined_at BIGINT NOT NULL,
    last_read_at BIGINT,

    CONSTRAINT unique_member UNIQUE (conversation_id, user_id)
);

CREATE INDEX idx_members_user ON conversation_members (user_id);
"""

messages_sql = """
CREATE TABLE messages (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    conversation_id UUID NOT NULL REFERENCES conversations(id),
    sender_id UUID NOT NULL REFERENCES profiles(id),
    body TEXT NOT NULL CHECK (length(btrim(body)) > 0),
    created_at BIGINT NOT NULL
);

CREATE INDEX idx_messages_conversation_time
    ON messages (conversation_id, created_at DESC);
"""

SCHEMA_SQL = "\n".join(
    [profiles_sql, conversations_sql, conversation_members_sql, messages_sql]
)
