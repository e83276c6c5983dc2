# reactorloom core: Java parsing, call-site rewriting and migration lanes
