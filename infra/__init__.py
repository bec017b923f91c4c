"""
Infrastructure: per-tenant bot configuration, environment-driven backend
selection and process bootstrap.

Import submodules directly (infra.bot_config, infra.config, infra.bootstrap).
"""
