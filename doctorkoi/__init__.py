"""Doctor Koi: conversational intake assistant that matches symptoms to a
probable condition and recommends a doctor to book."""
