"""Host entries and the node-list, file and key/value discovery backends."""