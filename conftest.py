# =============================================================================
# CONFTEST - Pytest Fixtures Globais
# =============================================================================
# Ambiente de teste sem dependências externas (sem Redis, sem rede)
# =============================================================================

import os
import sys
from pathlib import Path
from unittest.mock import patch

import pytest

# Adicionar root ao path
sys.path.insert(0, str(Path(__file__).parent))


# =============================================================================
# FIXTURES DE AMBIENTE
# =============================================================================


@pytest.fixture(autouse=True)
def setup_test_env():
    """Configura variáveis de ambiente para testes."""
    env_vars = {
        "ENVIRONMENT": "test",
        "OPENROUTER_API_KEY": "test-key-123",
        "TAVILY_API_KEY": "",
        "ENABLE_RATE_LIMITING": "false",
        "LOG_LEVEL": "ERROR",
    }
    with patch.dict(os.environ, env_vars):
        yield
