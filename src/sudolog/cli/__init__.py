"""
sudolog.cli — Click-based CLI entry point and command handlers.

Commands:
    run         Confirm, log, replicate, then execute a sudo command
    setup       First-run configuration wizard
    config      Show and validate configuration
    logs        Decrypt and list local log entries
    scan        Report tampering in the log history
    doctor      Environment diagnostics
    version     Show version information
"""
