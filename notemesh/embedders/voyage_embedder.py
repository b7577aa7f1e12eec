import numpy as np
import voyageai

from notemesh.embedders.base import normalize


class VoyageEmbedder:
    def __init__(self, api_key: str, model: str = "voyage-3"):
        self.client = voyageai.Client(api_key=api_key)
        self.model = model

    def embed(self, text: str) -> np.ndarray:
        result = self.client.embed(texts=[text], model=self.model, input_type="document")
        embedding = result.embeddings[0]
        return normalize(np.array(embedding, dtype=np.float32))
