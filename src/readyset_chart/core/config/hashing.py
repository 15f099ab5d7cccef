# src/readyset_chart/core/config/hashing.py
"""
Hashing canônico do readyset-chart.

Este módulo gera hashes determinísticos de estruturas serializáveis:
a configuração efetiva e o Render Output. O hash representa a
**identidade estrutural** do artefato e é utilizado para:
    - evidenciar determinismo (mesma entrada → mesmo hash)
    - digests por entrada no relatório do harness

Política de hashing (v1):
    - Serialização JSON canônica
    - Ordenação estável de chaves
    - Separadores compactos
    - Codificação UTF-8
    - SHA-256

Limites explícitos:
    - Não resolve configuração
    - Não persiste o hash
"""

import json
import hashlib
from typing import Any, Dict, List, Union


def canonical_json(data: Union[Dict[str, Any], List[Any]]) -> str:
    """Serialização JSON canônica (chaves ordenadas, separadores compactos)."""
    return json.dumps(
        data,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    )


def compute_config_hash(data: Union[Dict[str, Any], List[Any]]) -> str:
    """
    Gera um hash determinístico de uma estrutura serializável.

    Invariantes:
        - O valor retornado é uma string hexadecimal de 64 caracteres
        - Estruturas equivalentes produzem o mesmo hash,
          independentemente da ordem original das chaves
        - Nenhuma mutação ocorre sobre o input

    Args:
        data: Configuração efetiva (`dict`) ou lista de documentos renderizados.

    Returns:
        str: Hash SHA-256 hexadecimal.

    Raises:
        TypeError: Se o objeto fornecido não for dict nem list.
    """

    if not isinstance(data, (dict, list)):
        raise TypeError(
            f"Estrutura para hashing deve ser dict ou list, recebido: {type(data).__name__}"
        )

    return hashlib.sha256(canonical_json(data).encode("utf-8")).hexdigest()
