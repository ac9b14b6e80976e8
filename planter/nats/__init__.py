"""NATS session protocol: messages, sessions and the client."""