class Weight:
    """Represents a directed connection between neurons of adjacent layers."""
    def __init__(self, from_neuron_id, to_neuron_id, value=0.0):
        self.id = f"w_{from_neuron_id}_{to_neuron_id}"
        self.from_neuron_id = from_neuron_id
        self.to_neuron_id = to_neuron_id
        self.value = value
        self.gradient = 0.0

    def __repr__(self):
        return f"Weight({self.from_neuron_id}->{self.to_neuron_id}, w={self.value:.2f}, g={self.gradient:.4f})"
