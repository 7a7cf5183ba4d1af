"""World state: weddings, parties and online player sessions."""