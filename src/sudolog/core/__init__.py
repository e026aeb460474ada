"""
sudolog.core — audit pipeline and shared infrastructure.

Modules:
    codec         AES-256-GCM per-entry encryption (PBKDF2 key derivation)
    entry         LogEntry plaintext model
    store         Append-only JSON document of encrypted records
    replication   git working copy: clone, rebase-pull, commit, push, history
    tamper        Diff-shape heuristics over the log file's history
    reported      Already-reported tamper hashes (with a local cache)
    workflow      Gated pull → scan → report → log → push → execute sequence
    executor      Child-process handle for the privileged command
    viewer        Static viewer assets installed beside the log
    config        Configuration loading (TOML + env vars)
    logging_config  RichHandler or JSON log output
    constants     Exit codes, filesystem layout, crypto parameters
    exceptions    sudolog exception hierarchy
"""
