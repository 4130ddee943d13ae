"""
Deep Q-Network (DQN) Architecture
=================================

The neural network that approximates Q-values for state-action pairs.

Theory:
    Q-Learning aims to learn Q(s, a) = expected future reward
    We use a neural network to approximate this function

    Input:  121-feature encoded card battle state
    Output: Q-value for each of the 68 action slots

The network learns by minimizing TD (Temporal Difference) error:
    Loss = (Q(s,a) - (r + γ * max_a' Q_target(s', a')))²

The agent only depends on the FunctionApproximator contract below, so the
torch model can be replaced by anything that scores 68 actions.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional, cast

import numpy as np
import torch
import torch.nn as nn
import torch.nn.functional as F
import torch.optim as optim

from config import Config


class QNetwork(nn.Module):
    """
    Multi-layer perceptron mapping states to Q-values.

    Architecture:
        Input (121) → Hidden Layers (128, 128, 64) → Output (68)

    Example:
        >>> config = Config()
        >>> net = QNetwork(state_size=121, action_size=68, config=config)
        >>> state = torch.randn(1, 121)
        >>> q_values = net(state)  # Shape: (1, 68)
    """

    def __init__(
        self,
        state_size: int,
        action_size: int,
        config: Optional[Config] = None,
        hidden_layers: Optional[List[int]] = None
    ):
        """
        Initialize the network.

        Args:
            state_size: Dimension of state input
            action_size: Number of possible actions (output dimension)
            config: Configuration object
            hidden_layers: Override config's hidden layer sizes
        """
        super(QNetwork, self).__init__()

        self.config = config or Config()
        self.state_size = state_size
        self.action_size = action_size
        self.hidden_sizes = list(hidden_layers or self.config.HIDDEN_LAYERS)

        # Cache activation function (avoids dict lookup every forward pass)
        self._activation_fn = self._get_activation_fn()

        self.layers = nn.ModuleList()
        self._build_network()
        self._init_weights()

    def _build_network(self) -> None:
        """Construct the linear layers."""
        layer_sizes = [self.state_size] + self.hidden_sizes + [self.action_size]

        for i in range(len(layer_sizes) - 1):
            self.layers.append(nn.Linear(layer_sizes[i], layer_sizes[i + 1]))

    def _init_weights(self) -> None:
        """
        Initialize weights using Xavier/Glorot initialization.
        This helps with training stability.
        """
        for layer in self.layers:
            if isinstance(layer, nn.Linear):
                nn.init.xavier_uniform_(layer.weight)
                nn.init.constant_(layer.bias, 0.0)

    def _get_activation_fn(self) -> Callable[..., Any]:
        """Get the activation function based on config."""
        activation_map: Dict[str, Callable[..., Any]] = {
            'relu': F.relu,
            'leaky_relu': F.leaky_relu,
            'tanh': torch.tanh,
            'elu': F.elu,
        }
        result = activation_map.get(self.config.ACTIVATION, F.relu)
        return cast(Callable[..., Any], result)

    def forward(self, state: torch.Tensor) -> torch.Tensor:
        """
        Forward pass through the network.

        Args:
            state: Input state tensor of shape (batch_size, state_size)

        Returns:
            Q-values tensor of shape (batch_size, action_size)
        """
        x = state
        for layer in self.layers[:-1]:
            x = self._activation_fn(layer(x))

        # Output layer (no activation - raw Q-values)
        return self.layers[-1](x)

    def get_layer_info(self) -> List[Dict]:
        """Layer names and widths, input to output."""
        info = [{'name': 'Input', 'neurons': self.state_size, 'type': 'input'}]
        for i, layer in enumerate(self.layers[:-1]):
            info.append({'name': f'Hidden {i + 1}', 'neurons': layer.out_features, 'type': 'hidden'})
        info.append({'name': 'Output', 'neurons': self.action_size, 'type': 'output'})
        return info

    def count_parameters(self) -> int:
        """Return total number of trainable parameters."""
        return sum(p.numel() for p in self.parameters() if p.requires_grad)


class FunctionApproximator(ABC):
    """
    Contract between the agent and whatever estimates Q-values.

    Methods:
        predict(states) -> np.ndarray
            Online Q-values, shape (batch, 68) or (68,) for a single state
        predict_target(states) -> np.ndarray
            Same, from the target copy
        train_on_batch(states, actions, rewards, next_states, dones) -> float
            One gradient step toward Bellman targets; returns the loss
        sync_target_network()
            Make the target copy equal to the online estimator
        state_dict() / load_state_dict(data)
            Serializable snapshot for torch.save / torch.load
    """

    @abstractmethod
    def predict(self, states: np.ndarray) -> np.ndarray:
        pass

    @abstractmethod
    def predict_target(self, states: np.ndarray) -> np.ndarray:
        pass

    @abstractmethod
    def train_on_batch(
        self,
        states: np.ndarray,
        actions: np.ndarray,
        rewards: np.ndarray,
        next_states: np.ndarray,
        dones: np.ndarray
    ) -> float:
        pass

    @abstractmethod
    def sync_target_network(self) -> None:
        pass

    @abstractmethod
    def state_dict(self) -> Dict[str, Any]:
        pass

    @abstractmethod
    def load_state_dict(self, data: Dict[str, Any]) -> None:
        pass

    def dispose(self) -> None:
        """Release held resources. Override if there are any."""
        pass


class DQNModel(FunctionApproximator):
    """
    Online + target QNetwork pair trained with Adam on MSE loss.

    Targets are y = r for terminal transitions and
    y = r + γ * max_a' Q_target(s', a') otherwise.
    """

    def __init__(self, config: Optional[Config] = None):
        self.config = config or Config()
        self.device = self.config.DEVICE
        self.state_size = self.config.STATE_SIZE
        self.action_size = self.config.ACTION_SIZE

        self.policy_net = QNetwork(self.state_size, self.action_size, self.config).to(self.device)
        self.target_net = QNetwork(self.state_size, self.action_size, self.config).to(self.device)
        self.target_net.load_state_dict(self.policy_net.state_dict())
        self.target_net.eval()  # Target network is never trained directly

        self.optimizer = optim.Adam(self.policy_net.parameters(), lr=self.config.LEARNING_RATE)
        self.loss_fn = nn.MSELoss()

    def _to_tensor(self, states: np.ndarray) -> torch.Tensor:
        return torch.as_tensor(np.asarray(states, dtype=np.float32), device=self.device)

    def _forward(self, net: QNetwork, states: np.ndarray) -> np.ndarray:
        single = np.ndim(states) == 1
        batch = self._to_tensor(states)
        if single:
            batch = batch.unsqueeze(0)
        with torch.inference_mode():
            q_values = net(batch).cpu().numpy()
        return q_values[0] if single else q_values

    def predict(self, states: np.ndarray) -> np.ndarray:
        return self._forward(self.policy_net, states)

    def predict_target(self, states: np.ndarray) -> np.ndarray:
        return self._forward(self.target_net, states)

    def train_on_batch(
        self,
        states: np.ndarray,
        actions: np.ndarray,
        rewards: np.ndarray,
        next_states: np.ndarray,
        dones: np.ndarray
    ) -> float:
        states_t = self._to_tensor(states)
        next_states_t = self._to_tensor(next_states)
        actions_t = torch.as_tensor(actions, dtype=torch.int64, device=self.device)
        rewards_t = torch.as_tensor(rewards, dtype=torch.float32, device=self.device)
        dones_t = torch.as_tensor(dones, dtype=torch.float32, device=self.device)

        current_q = self.policy_net(states_t).gather(1, actions_t.unsqueeze(1)).squeeze(1)

        with torch.no_grad():
            next_q = self.target_net(next_states_t).max(dim=1).values
            target_q = rewards_t + (1 - dones_t) * self.config.GAMMA * next_q

        loss = self.loss_fn(current_q, target_q)

        self.optimizer.zero_grad()
        loss.backward()

        # Gradient clipping for stability
        if self.config.GRAD_CLIP > 0:
            torch.nn.utils.clip_grad_norm_(self.policy_net.parameters(), self.config.GRAD_CLIP)

        self.optimizer.step()
        return loss.item()

    def sync_target_network(self) -> None:
        """Hard update: Copy policy network weights to target network."""
        self.target_net.load_state_dict(self.policy_net.state_dict())

    def state_dict(self) -> Dict[str, Any]:
        return {
            'policy_net_state_dict': self.policy_net.state_dict(),
            'target_net_state_dict': self.target_net.state_dict(),
            'optimizer_state_dict': self.optimizer.state_dict(),
            'architecture': {
                'state_size': self.state_size,
                'action_size': self.action_size,
                'hidden_layers': self.policy_net.hidden_sizes,
                'activation': self.config.ACTIVATION,
            },
        }

    def load_state_dict(self, data: Dict[str, Any]) -> None:
        self.policy_net.load_state_dict(data['policy_net_state_dict'])
        self.target_net.load_state_dict(data['target_net_state_dict'])
        if 'optimizer_state_dict' in data:
            self.optimizer.load_state_dict(data['optimizer_state_dict'])
